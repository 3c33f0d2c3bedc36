# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""Unoptimized reference multiplication used as ground truth.

Every operand element is fetched through Layout.offset(), so the result only
depends on the logical contents of the operands. Integer accumulation and the
fixed-point epilogue use exact Python integer arithmetic.
"""

import logging
import time
from dataclasses import dataclass

import numpy as np

from gemmcheck.matrix.matrix import Matrix
from gemmcheck.spec.mul_spec import MultiplicationSpec

logger = logging.getLogger(__name__)

_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1


@dataclass(frozen=True)
class OracleResult:
    """Reference destination contents for one logical multiplication.

    Attributes:
        values: Read-only rows x cols array of destination values.
        depth: Reduction length K of the multiplication.
        elapsed_s: Time spent computing the result.
    """

    values: np.ndarray
    depth: int
    elapsed_s: float

    @property
    def shape(self) -> tuple[int, int]:
        return self.values.shape


def wrap_int32(value: int) -> int:
    return ((value - _INT32_MIN) % (1 << 32)) + _INT32_MIN


def srdhm(a: int, b: int) -> int:
    """Scalar saturating rounding doubling high multiply."""
    if a == b == _INT32_MIN:
        return _INT32_MAX
    ab = a * b
    nudge = (1 << 30) if ab >= 0 else 1 - (1 << 30)
    total = ab + nudge
    high = abs(total) // (1 << 31)
    return high if total >= 0 else -high


def rounding_shift_right(x: int, exponent: int) -> int:
    mask = (1 << exponent) - 1
    remainder = x & mask
    threshold = (mask >> 1) + (1 if x < 0 else 0)
    return (x >> exponent) + (1 if remainder > threshold else 0)


def apply_multiplier(x: int, mantissa: int, exponent: int) -> int:
    """Scalar equivalent of requant.multiply_by_quantized_multiplier."""
    shifted = wrap_int32(x << max(exponent, 0))
    return rounding_shift_right(srdhm(shifted, mantissa), max(-exponent, 0))


def _gather(matrix: Matrix, index: int, depth: int, along_rows: bool, dtype: type) -> np.ndarray:
    if along_rows:
        values = (matrix.element(index, k) for k in range(depth))
    else:
        values = (matrix.element(k, index) for k in range(depth))
    return np.fromiter(values, dtype=dtype, count=depth)


def reference_multiply(
    spec: MultiplicationSpec, lhs: Matrix, rhs: Matrix, dst_zero_point: int | float = 0
) -> OracleResult:
    """Compute the destination of lhs @ rhs under spec, one dot product per element.

    Args:
        spec: Multiplication semantics (bias, requantization, clamping).
        lhs: Left operand, rows x depth.
        rhs: Right operand, depth x cols.
        dst_zero_point: Zero point of the destination.

    Returns:
        OracleResult holding the read-only destination values.

    Raises:
        ConfigurationError: If the operands do not satisfy the spec.
    """
    start = time.perf_counter()
    rows, depth, cols = lhs.rows, lhs.cols, rhs.cols
    spec.check_bindings(rows, (lhs.dtype, rhs.dtype), (lhs.zero_point, rhs.zero_point, dst_zero_point))

    work_dtype = np.float64 if spec.is_float else np.int64
    lhs_zp = 0 if spec.is_float else int(lhs.zero_point)
    rhs_zp = 0 if spec.is_float else int(rhs.zero_point)
    lhs_rows = [_gather(lhs, r, depth, True, work_dtype) - lhs_zp for r in range(rows)]
    rhs_cols = [_gather(rhs, c, depth, False, work_dtype) - rhs_zp for c in range(cols)]

    values = np.empty((rows, cols), dtype=spec.dst_dtype)
    overflowed = False
    for r in range(rows):
        for c in range(cols):
            acc = np.dot(lhs_rows[r], rhs_cols[c]) if depth else 0
            if spec.is_float:
                values[r, c] = _float_epilogue(spec, float(acc), r)
            else:
                acc = int(acc)
                overflowed |= not _INT32_MIN <= acc <= _INT32_MAX
                values[r, c] = _int_epilogue(spec, acc, r, int(dst_zero_point))
    if overflowed:
        logger.warning("int32 accumulator overflow in reference %dx%dx%d, results wrap", rows, depth, cols)

    values.setflags(write=False)
    elapsed = time.perf_counter() - start
    logger.debug("reference %dx%dx%d computed in %.3fs", rows, depth, cols, elapsed)
    return OracleResult(values=values, depth=depth, elapsed_s=elapsed)


def _int_epilogue(spec: MultiplicationSpec, acc: int, row: int, dst_zero_point: int) -> int:
    acc = wrap_int32(acc)
    if spec.bias is not None:
        acc = wrap_int32(acc + int(spec.bias[row]))
    if not spec.dst_is_raw:
        if spec.has_multiplier:
            mantissa, exponent = spec.requantization.for_row(row)
            acc = apply_multiplier(acc, mantissa, exponent)
        acc += dst_zero_point
    return min(max(acc, spec.clamp_min), spec.clamp_max)


def _float_epilogue(spec: MultiplicationSpec, acc: float, row: int) -> float:
    if spec.bias is not None:
        acc += float(spec.bias[row])
    return min(max(acc, spec.clamp_min), spec.clamp_max)
