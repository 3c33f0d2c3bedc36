# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Differential harness: runs every structural variant of a logical
multiplication and compares each result with the reference.
"""

from gemmcheck.harness.case import TestCase
from gemmcheck.harness.config import HarnessConfig
from gemmcheck.harness.factory import DTYPE_FAMILIES, CaseFactory
from gemmcheck.harness.passes import (
    ALL_PASSES,
    deep_pass,
    misc_pass,
    narrow_pass,
    non_linear_pass,
    packed_rcc_pass,
    run_all_passes,
    run_shapes,
    shallow_pass,
    small_shape_pass,
)
from gemmcheck.harness.results import CaseError, CaseResult, HarnessReport, Mismatch, VariantResult
from gemmcheck.harness.runner import DifferentialHarness
from gemmcheck.harness.shapes import BlockShape
from gemmcheck.harness.variants import ALL_ORDER_COMBINATIONS, RCC_ORDERS, LayoutStyle, Variant, VariantSpace

__all__ = [
    # Cases
    "TestCase",
    "CaseFactory",
    "DTYPE_FAMILIES",
    "BlockShape",
    # Variants
    "ALL_ORDER_COMBINATIONS",
    "RCC_ORDERS",
    "LayoutStyle",
    "Variant",
    "VariantSpace",
    # Execution
    "DifferentialHarness",
    "HarnessConfig",
    # Results
    "CaseError",
    "CaseResult",
    "HarnessReport",
    "Mismatch",
    "VariantResult",
    # Passes
    "ALL_PASSES",
    "run_all_passes",
    "run_shapes",
    "small_shape_pass",
    "packed_rcc_pass",
    "non_linear_pass",
    "misc_pass",
    "deep_pass",
    "shallow_pass",
    "narrow_pass",
]
