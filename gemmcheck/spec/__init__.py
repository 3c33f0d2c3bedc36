# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Declarative description of a multiplication: types, bias, requantization,
clamping and the policies restricting which code paths must be supported.
"""

from gemmcheck.spec.mul_spec import MultiplicationSpec, dtype_limits, is_packed_linear
from gemmcheck.spec.policy import LayoutSupport, LoopStructure, ZeroPointSupport, natural_zero
from gemmcheck.spec.requant import (
    Multiplier,
    PerChannelMultiplier,
    ScalarMultiplier,
    multiply_by_quantized_multiplier,
    quantize_multiplier,
)

__all__ = [
    # Spec
    "MultiplicationSpec",
    "dtype_limits",
    "is_packed_linear",
    # Policies
    "LoopStructure",
    "LayoutSupport",
    "ZeroPointSupport",
    "natural_zero",
    # Requantization
    "Multiplier",
    "ScalarMultiplier",
    "PerChannelMultiplier",
    "quantize_multiplier",
    "multiply_by_quantized_multiplier",
]
