# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""Policy enums that restrict which code paths a multiplication must support.

The default of every policy is the most general (and slowest) choice. Picking a
restrictive value trades coverage for a smaller, faster specialization, and the
caller promises to only hand such an operation inputs that satisfy the
policy's preconditions.
"""

from enum import Enum

import numpy as np


class LoopStructure(Enum):
    """GENERAL: multi-threaded blocked loops. SIMPLE: single-threaded, small sizes only. AUTO: pick per problem."""

    GENERAL = "general"
    SIMPLE = "simple"
    AUTO = "auto"


class LayoutSupport(Enum):
    """GENERAL: any layout. PACKED_LINEAR_RCC: RowMajor LHS, ColMajor RHS and destination, packed, linear."""

    GENERAL = "general"
    PACKED_LINEAR_RCC = "packed_linear_rcc"


class ZeroPointSupport(Enum):
    """GENERAL: any zero point. SYMMETRIC: only the type's natural zero."""

    GENERAL = "general"
    SYMMETRIC = "symmetric"


def natural_zero(dtype: np.dtype) -> int:
    """Return the quantized value representing real zero in symmetric quantization.

    Args:
        dtype: Scalar type of the matrix.

    Returns:
        128 for uint8, 0 for every other supported type.
    """
    dtype = np.dtype(dtype)
    if dtype == np.uint8:
        return 128
    return 0
