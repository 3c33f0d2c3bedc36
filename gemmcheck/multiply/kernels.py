# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""
NumPy implementations of the multiplication contract.

blocked_multiply is the optimized path: it packs operands into contiguous
panels (reinterpreting packed linear RCC buffers without any gather), folds
asymmetric zero points in with row/column sums, splits the destination into
fixed tiles and computes them on a pool of thread_count workers.
naive_multiply gathers the logical operands and performs a single matmul.
Both share the epilogue (bias, requantization, zero point, clamp).
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from gemmcheck.matrix.layout import Order
from gemmcheck.matrix.matrix import Matrix
from gemmcheck.spec.mul_spec import MultiplicationSpec, is_packed_linear
from gemmcheck.spec.policy import LoopStructure, ZeroPointSupport, natural_zero
from gemmcheck.spec.requant import multiply_by_quantized_multiplier, wrap_int32

logger = logging.getLogger(__name__)

TILE_ROWS = 16
TILE_COLS = 16


def apply_epilogue(
    spec: MultiplicationSpec,
    acc: np.ndarray,
    row_start: int,
    multiplier: tuple[np.ndarray, np.ndarray] | None,
    dst_zero_point: int | float,
) -> np.ndarray:
    """Turn a tile of accumulators into destination values.

    Args:
        spec: Multiplication semantics.
        acc: Accumulators for destination rows starting at row_start.
        row_start: Index of the first destination row in acc.
        multiplier: Per-row (mantissa, exponent) arrays for the whole
            destination, or None.
        dst_zero_point: Zero point of the destination.

    Returns:
        Tile of values in the destination type.
    """
    row_stop = row_start + acc.shape[0]
    if spec.is_float:
        acc = acc.astype(spec.accum_dtype, copy=False)
        if spec.bias is not None:
            acc = acc + spec.bias[row_start:row_stop, None]
        # Clamp bounds span the destination range, which may exceed the accumulator type.
        acc = acc.astype(np.float64)
    else:
        acc = wrap_int32(acc)
        if spec.bias is not None:
            acc = wrap_int32(acc + spec.bias[row_start:row_stop, None].astype(np.int64))
        if not spec.dst_is_raw:
            if multiplier is not None:
                mantissa, exponent = multiplier
                acc = multiply_by_quantized_multiplier(
                    acc, mantissa[row_start:row_stop, None], exponent[row_start:row_stop, None]
                )
            acc = acc + int(dst_zero_point)
    return np.clip(acc, spec.clamp_min, spec.clamp_max).astype(spec.dst_dtype)


def _is_rcc(lhs: Matrix, rhs: Matrix, dst: Matrix) -> bool:
    return (
        is_packed_linear(lhs.layout, Order.ROW_MAJOR)
        and is_packed_linear(rhs.layout, Order.COL_MAJOR)
        and is_packed_linear(dst.layout, Order.COL_MAJOR)
    )


def _pack(spec: MultiplicationSpec, lhs: Matrix, rhs: Matrix, rcc: bool) -> tuple[np.ndarray, np.ndarray]:
    rows, depth, cols = lhs.rows, lhs.cols, rhs.cols
    if rcc:
        lhs_panel = lhs.data[: rows * depth].reshape(rows, depth)
        rhs_panel = rhs.data[: depth * cols].reshape(cols, depth).T
    else:
        lhs_panel = lhs.data[lhs.layout.offsets()]
        rhs_panel = rhs.data[rhs.layout.offsets()]
    work_dtype = spec.accum_dtype if spec.is_float else np.int64
    lhs_panel = lhs_panel.astype(work_dtype, copy=False)
    rhs_panel = rhs_panel.astype(work_dtype, copy=False)
    if not spec.is_float and spec.zero_point_support == ZeroPointSupport.SYMMETRIC:
        lhs_panel = lhs_panel - natural_zero(lhs.dtype)
        rhs_panel = rhs_panel - natural_zero(rhs.dtype)
    return lhs_panel, rhs_panel


def _tiles(rows: int, cols: int, loop_structure: LoopStructure) -> list[tuple[int, int, int, int]]:
    if loop_structure == LoopStructure.SIMPLE:
        return [(0, rows, 0, cols)]
    return [
        (r, min(r + TILE_ROWS, rows), c, min(c + TILE_COLS, cols))
        for r in range(0, rows, TILE_ROWS)
        for c in range(0, cols, TILE_COLS)
    ]


def blocked_multiply(
    spec: MultiplicationSpec, lhs: Matrix, rhs: Matrix, dst: Matrix, thread_count: int
) -> Matrix:
    """Compute dst = epilogue(lhs @ rhs) with tiled, multi-threaded loops.

    Args:
        spec: Multiplication semantics and policies.
        lhs: Left operand, rows x depth.
        rhs: Right operand, depth x cols.
        dst: Destination matrix, written in place.
        thread_count: Number of worker threads.

    Returns:
        dst, after the multiplication.

    Raises:
        ConfigurationError: If the operands violate the spec's policies.
    """
    spec.check_operands(lhs, rhs, dst, thread_count)
    rows, depth, cols = lhs.rows, lhs.cols, rhs.cols
    if rows == 0 or cols == 0:
        return dst

    loop_structure = spec.resolve_loop_structure(rows, depth, cols)
    rcc = _is_rcc(lhs, rhs, dst)
    lhs_panel, rhs_panel = _pack(spec, lhs, rhs, rcc)

    asymmetric = not spec.is_float and spec.zero_point_support == ZeroPointSupport.GENERAL
    lhs_zp = int(lhs.zero_point) if asymmetric else 0
    rhs_zp = int(rhs.zero_point) if asymmetric else 0
    lhs_sums = lhs_panel.sum(axis=1) if rhs_zp else None
    rhs_sums = rhs_panel.sum(axis=0) if lhs_zp else None
    multiplier = spec.multiplier_arrays(rows)

    if rcc:
        dst_view = dst.data[: rows * cols].reshape(cols, rows).T
        dst_offsets = None
    else:
        dst_view = None
        dst_offsets = dst.layout.offsets()

    def compute_tile(tile: tuple[int, int, int, int]) -> None:
        r0, r1, c0, c1 = tile
        acc = lhs_panel[r0:r1] @ rhs_panel[:, c0:c1]
        if lhs_zp:
            acc = acc - lhs_zp * rhs_sums[None, c0:c1]
        if rhs_zp:
            acc = acc - rhs_zp * lhs_sums[r0:r1, None]
        if lhs_zp and rhs_zp:
            acc = acc + depth * lhs_zp * rhs_zp
        out = apply_epilogue(spec, acc, r0, multiplier, dst.zero_point)
        if dst_view is not None:
            dst_view[r0:r1, c0:c1] = out
        else:
            dst.data[dst_offsets[r0:r1, c0:c1]] = out

    tiles = _tiles(rows, cols, loop_structure)
    num_workers = 1 if loop_structure == LoopStructure.SIMPLE else min(thread_count, len(tiles))
    logger.debug(
        "blocked_multiply %dx%dx%d: %s loops, %d tiles on %d workers, rcc=%s",
        rows, depth, cols, loop_structure.name, len(tiles), num_workers, rcc,
    )
    if num_workers == 1:
        for tile in tiles:
            compute_tile(tile)
    else:
        with ThreadPoolExecutor(max_workers=num_workers) as executor:
            list(executor.map(compute_tile, tiles))
    return dst


def naive_multiply(spec: MultiplicationSpec, lhs: Matrix, rhs: Matrix, dst: Matrix, thread_count: int) -> Matrix:
    """Single-shot path: gather logical operands, one matmul, epilogue, scatter.

    thread_count is accepted for interface compatibility and ignored.
    """
    spec.check_operands(lhs, rhs, dst, thread_count)
    if dst.rows == 0 or dst.cols == 0:
        return dst
    if spec.is_float:
        acc = lhs.logical().astype(np.float64) @ rhs.logical().astype(np.float64)
    else:
        acc = (lhs.logical().astype(np.int64) - int(lhs.zero_point)) @ (
            rhs.logical().astype(np.int64) - int(rhs.zero_point)
        )
    out = apply_epilogue(spec, acc, 0, spec.multiplier_arrays(dst.rows), dst.zero_point)
    dst.data[dst.layout.offsets()] = out
    return dst
