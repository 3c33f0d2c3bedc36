# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from gemmcheck.oracle.cache import OracleCache
from gemmcheck.oracle.compare import Comparison, compare_results, float_tolerance
from gemmcheck.oracle.reference import OracleResult, apply_multiplier, reference_multiply

__all__ = [
    "Comparison",
    "OracleCache",
    "OracleResult",
    "apply_multiplier",
    "compare_results",
    "float_tolerance",
    "reference_multiply",
]
