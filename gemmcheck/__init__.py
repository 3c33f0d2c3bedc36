# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Differential validation of low-precision matrix multiplication.

Every structural variant of a multiplication (storage orders, strides,
kernel blocks, thread counts, implementation paths) must produce the same
logical result as an independent reference.
"""

from gemmcheck.errors import ConfigurationError, GemmCheckError, InfrastructureError, NumericMismatchError
from gemmcheck.harness import CaseFactory, DifferentialHarness, HarnessConfig, HarnessReport, TestCase
from gemmcheck.matrix import Allocator, Layout, Matrix, Order
from gemmcheck.multiply import DEFAULT_PATHS, blocked_multiply, naive_multiply
from gemmcheck.oracle import OracleCache, compare_results, reference_multiply
from gemmcheck.spec import (
    LayoutSupport,
    LoopStructure,
    MultiplicationSpec,
    PerChannelMultiplier,
    ScalarMultiplier,
    ZeroPointSupport,
)

__version__ = "0.1.0"

__all__ = [
    "Allocator",
    "CaseFactory",
    "ConfigurationError",
    "DEFAULT_PATHS",
    "DifferentialHarness",
    "GemmCheckError",
    "HarnessConfig",
    "HarnessReport",
    "InfrastructureError",
    "Layout",
    "LayoutSupport",
    "LoopStructure",
    "Matrix",
    "MultiplicationSpec",
    "NumericMismatchError",
    "OracleCache",
    "Order",
    "PerChannelMultiplier",
    "ScalarMultiplier",
    "TestCase",
    "ZeroPointSupport",
    "blocked_multiply",
    "compare_results",
    "naive_multiply",
    "reference_multiply",
]
