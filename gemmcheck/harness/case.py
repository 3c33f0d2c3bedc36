# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field

import numpy as np

from gemmcheck.errors import ConfigurationError
from gemmcheck.harness.shapes import BlockShape
from gemmcheck.harness.variants import ALL_ORDER_COMBINATIONS, LayoutStyle, Variant, VariantSpace, make_layout
from gemmcheck.matrix.layout import Layout, Order, packed_layout
from gemmcheck.matrix.matrix import Matrix
from gemmcheck.spec.mul_spec import MultiplicationSpec
from gemmcheck.types import ORDERS_DTYPE, SHAPE_DTYPE


def _frozen(values: np.ndarray) -> np.ndarray:
    values = np.array(values, copy=True)
    values.setflags(write=False)
    return values


@dataclass(frozen=True, eq=False)
class TestCase:
    """One logical multiplication and the structural variants to run it under.

    The logical operand values are fixed at construction; every variant
    stores the same values under a different layout.

    Attributes:
        name: Human-readable identifier used in reports.
        spec: Multiplication semantics.
        lhs_values: Logical M x K left operand.
        rhs_values: Logical K x N right operand.
        lhs_zero_point: Zero point of the left operand.
        rhs_zero_point: Zero point of the right operand.
        dst_zero_point: Zero point of the destination.
        orders: Storage-order combinations to run.
        styles: Layout styles to run.
        thread_counts: Thread counts to run.
        block: Kernel-block sizes for blocked styles.
    """

    __test__ = False

    name: str
    spec: MultiplicationSpec
    lhs_values: np.ndarray
    rhs_values: np.ndarray
    lhs_zero_point: int | float = 0
    rhs_zero_point: int | float = 0
    dst_zero_point: int | float = 0
    orders: tuple[ORDERS_DTYPE, ...] = ALL_ORDER_COMBINATIONS
    styles: tuple[LayoutStyle, ...] = (LayoutStyle.PACKED,)
    thread_counts: tuple[int, ...] = (1,)
    block: BlockShape = field(default_factory=BlockShape)

    def __post_init__(self) -> None:
        lhs_values = _frozen(self.lhs_values)
        rhs_values = _frozen(self.rhs_values)
        if lhs_values.ndim != 2 or rhs_values.ndim != 2:
            raise ConfigurationError(f"{self.name}: operands must be two-dimensional", "values")
        if lhs_values.shape[1] != rhs_values.shape[0]:
            raise ConfigurationError(
                f"{self.name}: lhs {lhs_values.shape} and rhs {rhs_values.shape} do not chain", "values"
            )
        object.__setattr__(self, "lhs_values", lhs_values)
        object.__setattr__(self, "rhs_values", rhs_values)
        object.__setattr__(self, "orders", tuple(self.orders))
        object.__setattr__(self, "styles", tuple(self.styles))
        object.__setattr__(self, "thread_counts", tuple(self.thread_counts))
        self.spec.check_bindings(
            self.rows,
            (lhs_values.dtype, rhs_values.dtype),
            (self.lhs_zero_point, self.rhs_zero_point, self.dst_zero_point),
        )
        if any(style.is_blocked for style in self.styles):
            rows, depth, cols = self.shape
            block = self.block
            if rows % block.rows or depth % block.depth or cols % block.cols:
                raise ConfigurationError(
                    f"{self.name}: shape {self.shape} is not a multiple of block "
                    f"{block.rows}x{block.depth}x{block.cols}",
                    "block",
                )

    @property
    def shape(self) -> SHAPE_DTYPE:
        rows, depth = self.lhs_values.shape
        return rows, depth, self.rhs_values.shape[1]

    @property
    def rows(self) -> int:
        return self.lhs_values.shape[0]

    @property
    def depth(self) -> int:
        return self.lhs_values.shape[1]

    @property
    def cols(self) -> int:
        return self.rhs_values.shape[1]

    @property
    def oracle_key(self) -> tuple:
        """Identity of the logical multiplication, independent of variants."""
        digest = hashlib.sha1()
        digest.update(self.lhs_values.tobytes())
        digest.update(self.rhs_values.tobytes())
        digest.update(repr((self.lhs_zero_point, self.rhs_zero_point, self.dst_zero_point)).encode())
        return self.shape, self.spec.fingerprint(), digest.hexdigest()[:16]

    def variants(self, paths: tuple[str, ...]) -> VariantSpace:
        return VariantSpace(self.spec, paths, self.orders, self.styles, self.thread_counts)

    def layouts(self, variant: Variant) -> tuple[Layout, Layout, Layout]:
        """Layouts of lhs, rhs and dst under a variant."""
        rows, depth, cols = self.shape
        block = self.block
        return (
            make_layout(variant, "lhs", rows, depth, block.rows, block.depth),
            make_layout(variant, "rhs", depth, cols, block.depth, block.cols),
            make_layout(variant, "dst", rows, cols, block.rows, block.cols),
        )

    def operands(self, variant: Variant) -> tuple[Matrix, Matrix]:
        """Fresh lhs and rhs matrices holding the logical values under a variant."""
        lhs_layout, rhs_layout, _ = self.layouts(variant)
        return (
            Matrix.from_logical(self.lhs_values, lhs_layout, self.lhs_zero_point),
            Matrix.from_logical(self.rhs_values, rhs_layout, self.rhs_zero_point),
        )

    def reference_operands(self) -> tuple[Matrix, Matrix]:
        """Operands in a fixed canonical layout, for computing the reference."""
        rows, depth, cols = self.shape
        return (
            Matrix.from_logical(self.lhs_values, packed_layout(rows, depth, Order.ROW_MAJOR), self.lhs_zero_point),
            Matrix.from_logical(self.rhs_values, packed_layout(depth, cols, Order.COL_MAJOR), self.rhs_zero_point),
        )

    def __repr__(self) -> str:
        return f"TestCase({self.name!r}, shape={self.shape}, {self.spec!r})"
