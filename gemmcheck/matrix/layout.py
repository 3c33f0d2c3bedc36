# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""Matrix layouts: storage order, stride and kernel-block structure.

A layout maps a logical (row, col) coordinate to an offset in a flat buffer.
Linear layouts use a single storage order with an optional stride. Non-linear
layouts split the matrix into ``kernel.rows x kernel.cols`` blocks: the blocks
are laid out in the outer order, and elements inside a block in the kernel
order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from gemmcheck.errors import ConfigurationError


class Order(Enum):
    ROW_MAJOR = "row_major"
    COL_MAJOR = "col_major"

    @property
    def short(self) -> str:
        return "R" if self == Order.ROW_MAJOR else "C"


def _is_pow2(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


@dataclass(frozen=True)
class KernelLayout:
    """Block structure of a non-linear layout. 1x1 blocks mean linear."""

    order: Order = Order.COL_MAJOR
    rows: int = 1
    cols: int = 1

    def __post_init__(self) -> None:
        if not (_is_pow2(self.rows) and _is_pow2(self.cols)):
            raise ConfigurationError(f"kernel block {self.rows}x{self.cols} must be powers of two", "kernel")


@dataclass(frozen=True)
class Layout:
    """Logical shape and storage metadata of one operand.

    Attributes:
        rows: Number of logical rows.
        cols: Number of logical columns.
        order: Outer storage order.
        stride: Distance between consecutive rows (RowMajor) or columns
            (ColMajor). None selects the packed stride.
        kernel: Block structure; the default 1x1 block is linear.
    """

    rows: int
    cols: int
    order: Order = Order.COL_MAJOR
    stride: int | None = None
    kernel: KernelLayout = field(default_factory=KernelLayout)

    def __post_init__(self) -> None:
        if self.rows < 0 or self.cols < 0:
            raise ConfigurationError(f"negative matrix shape {self.rows}x{self.cols}", "shape")
        if self.rows % self.kernel.rows or self.cols % self.kernel.cols:
            raise ConfigurationError(
                f"shape {self.rows}x{self.cols} is not a multiple of kernel block "
                f"{self.kernel.rows}x{self.kernel.cols}",
                "kernel",
            )
        stride = self.inner_dim if self.stride is None else int(self.stride)
        if stride < self.inner_dim:
            raise ConfigurationError(f"stride {stride} smaller than inner dimension {self.inner_dim}", "stride")
        object.__setattr__(self, "stride", stride)

    @property
    def inner_dim(self) -> int:
        return self.cols if self.order == Order.ROW_MAJOR else self.rows

    @property
    def outer_dim(self) -> int:
        return self.rows if self.order == Order.ROW_MAJOR else self.cols

    @property
    def is_linear(self) -> bool:
        return self.kernel.rows == 1 and self.kernel.cols == 1

    @property
    def is_packed(self) -> bool:
        return self.stride == self.inner_dim

    @property
    def buffer_size(self) -> int:
        """Number of elements the flat storage buffer must hold."""
        if self.rows == 0 or self.cols == 0:
            return 0
        return self.stride * self.outer_dim

    def offset(self, row: int, col: int) -> int:
        """Offset of the logical element (row, col) in the flat buffer."""
        kernel = self.kernel
        row_outer = row - row % kernel.rows
        col_outer = col - col % kernel.cols
        row_stride_outer = kernel.cols if self.order == Order.COL_MAJOR else self.stride
        col_stride_outer = kernel.rows if self.order == Order.ROW_MAJOR else self.stride
        row_stride_inner = 1 if kernel.order == Order.COL_MAJOR else kernel.cols
        col_stride_inner = 1 if kernel.order == Order.ROW_MAJOR else kernel.rows
        return (
            row_outer * row_stride_outer
            + col_outer * col_stride_outer
            + (row - row_outer) * row_stride_inner
            + (col - col_outer) * col_stride_inner
        )

    def offsets(self) -> np.ndarray:
        """Vectorized offset(): a rows x cols int64 array of buffer offsets."""
        kernel = self.kernel
        row = np.arange(self.rows, dtype=np.int64)[:, None]
        col = np.arange(self.cols, dtype=np.int64)[None, :]
        row_outer = row - row % kernel.rows
        col_outer = col - col % kernel.cols
        row_stride_outer = kernel.cols if self.order == Order.COL_MAJOR else self.stride
        col_stride_outer = kernel.rows if self.order == Order.ROW_MAJOR else self.stride
        row_stride_inner = 1 if kernel.order == Order.COL_MAJOR else kernel.cols
        col_stride_inner = 1 if kernel.order == Order.ROW_MAJOR else kernel.rows
        return (
            row_outer * row_stride_outer
            + col_outer * col_stride_outer
            + (row - row_outer) * row_stride_inner
            + (col - col_outer) * col_stride_inner
        )

    def describe(self) -> str:
        """Compact label such as 'R', 'C+s3' or 'C/k2x4R'."""
        label = self.order.short
        if not self.is_packed:
            label += f"+s{self.stride - self.inner_dim}"
        if not self.is_linear:
            label += f"/k{self.kernel.rows}x{self.kernel.cols}{self.kernel.order.short}"
        return label

    def __repr__(self) -> str:
        return f"Layout({self.rows}x{self.cols} {self.describe()})"


def packed_layout(rows: int, cols: int, order: Order) -> Layout:
    """Linear, unstrided layout."""
    return Layout(rows=rows, cols=cols, order=order)


def strided_layout(rows: int, cols: int, order: Order, padding: int) -> Layout:
    """Linear layout whose logical extent is a sub-block of a wider allocation."""
    inner = cols if order == Order.ROW_MAJOR else rows
    return Layout(rows=rows, cols=cols, order=order, stride=inner + padding)


def blocked_layout(
    rows: int, cols: int, order: Order, kernel_rows: int, kernel_cols: int, kernel_order: Order, padding: int = 0
) -> Layout:
    """Non-linear layout made of kernel_rows x kernel_cols blocks."""
    inner = cols if order == Order.ROW_MAJOR else rows
    return Layout(
        rows=rows,
        cols=cols,
        order=order,
        stride=inner + padding,
        kernel=KernelLayout(order=kernel_order, rows=kernel_rows, cols=kernel_cols),
    )
