# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Comparison rule between a multiplication result and its reference.

Integer destinations must match exactly. Floating destinations may differ by

    4 * eps * sqrt(max(depth, 1)) * max_abs

per element, where eps is the coarser of the destination and accumulator
epsilons and max_abs is the largest finite magnitude in either result.
Rounding errors of a length-K reduction grow roughly like sqrt(K) for random
data, and scaling by max_abs makes the bound relative to the output range.
Non-finite values must appear at the same positions with the same values.
"""

from dataclasses import dataclass

import numpy as np

FLOAT_TOLERANCE_FACTOR = 4.0


@dataclass(frozen=True)
class Comparison:
    """Outcome of comparing one result against a reference.

    Attributes:
        ok: Whether every element is within tolerance.
        max_abs_err: Largest absolute difference over finite elements.
        tolerance: Allowed absolute difference per element.
        num_bad: Number of elements outside tolerance.
        first_bad: (row, col) of the first bad element in row-major order.
        expected_value: Reference value at first_bad.
        actual_value: Result value at first_bad.
        summary: One-line description.
    """

    ok: bool
    max_abs_err: float
    tolerance: float
    num_bad: int
    first_bad: tuple[int, int] | None
    expected_value: int | float | None
    actual_value: int | float | None
    summary: str


def float_tolerance(
    dtype: np.dtype, depth: int, expected: np.ndarray, actual: np.ndarray, accum_dtype: np.dtype | None = None
) -> float:
    """Absolute tolerance for a floating result of a length-depth reduction.

    A float32 accumulator feeding a float64 destination is held to float32 precision.
    """
    magnitudes = [np.abs(a[np.isfinite(a)]) for a in (expected, actual)]
    max_abs = max((float(m.max()) for m in magnitudes if m.size), default=0.0)
    eps = float(np.finfo(dtype).eps)
    if accum_dtype is not None and np.issubdtype(accum_dtype, np.floating):
        eps = max(eps, float(np.finfo(accum_dtype).eps))
    return FLOAT_TOLERANCE_FACTOR * eps * float(np.sqrt(max(depth, 1))) * max_abs


def compare_results(
    expected: np.ndarray,
    actual: np.ndarray,
    depth: int,
    scale: float = 1.0,
    accum_dtype: np.dtype | None = None,
) -> Comparison:
    """Compare a result against a reference with the exact or bounded-error rule.

    Args:
        expected: Reference rows x cols values.
        actual: Result rows x cols values.
        depth: Reduction length of the multiplication.
        scale: Multiplier on the float tolerance. Comparing two results that
            are each within tolerance of the reference uses 2.
        accum_dtype: Accumulator type of the multiplication. Floating
            accumulators coarser than the destination widen the tolerance.

    Returns:
        Comparison describing the first differing element, if any.
    """
    if expected.shape != actual.shape:
        summary = f"shape mismatch: expected {expected.shape}, got {actual.shape}"
        return Comparison(False, float("inf"), 0.0, expected.size, None, None, None, summary)
    if expected.size == 0:
        return Comparison(True, 0.0, 0.0, 0, None, None, None, "ok (empty)")

    if np.issubdtype(expected.dtype, np.floating):
        exp_f = expected.astype(np.float64)
        act_f = actual.astype(np.float64)
        tolerance = scale * float_tolerance(expected.dtype, depth, exp_f, act_f, accum_dtype)
        finite = np.isfinite(exp_f) & np.isfinite(act_f)
        abs_err = np.zeros(exp_f.shape, dtype=np.float64)
        abs_err[finite] = np.abs(exp_f[finite] - act_f[finite])
        same_nonfinite = (np.isnan(exp_f) & np.isnan(act_f)) | (np.isinf(exp_f) & (exp_f == act_f))
        bad = (abs_err > tolerance) | (~finite & ~same_nonfinite)
    else:
        tolerance = 0.0
        abs_err = np.abs(expected.astype(np.int64) - actual.astype(np.int64)).astype(np.float64)
        bad = abs_err > 0

    max_abs_err = float(abs_err.max())
    num_bad = int(np.count_nonzero(bad))
    if num_bad == 0:
        return Comparison(True, max_abs_err, tolerance, 0, None, None, None, "ok")

    row, col = (int(i) for i in np.argwhere(bad)[0])
    expected_value = expected[row, col].item()
    actual_value = actual[row, col].item()
    summary = (
        f"{num_bad}/{expected.size} elements differ; first at ({row}, {col}): "
        f"expected {expected_value}, got {actual_value} (tolerance {tolerance:.3g})"
    )
    return Comparison(False, max_abs_err, tolerance, num_bad, (row, col), expected_value, actual_value, summary)
