# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Structural variants of one logical multiplication.

A variant fixes everything the result must not depend on: the storage order
of each operand, how the storage is laid out (packed, strided, kernel
blocked), the thread count and the multiplication path. VariantSpace
enumerates the variants a test case allows, filtered by the spec's policies.
"""

import itertools
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from gemmcheck.errors import ConfigurationError
from gemmcheck.matrix.layout import Layout, Order, blocked_layout, packed_layout, strided_layout
from gemmcheck.spec.mul_spec import MultiplicationSpec
from gemmcheck.spec.policy import LayoutSupport, LoopStructure
from gemmcheck.types import ORDERS_DTYPE

ALL_ORDER_COMBINATIONS: tuple[ORDERS_DTYPE, ...] = tuple(itertools.product(Order, repeat=3))
RCC_ORDERS: ORDERS_DTYPE = (Order.ROW_MAJOR, Order.COL_MAJOR, Order.COL_MAJOR)

# Extra elements between consecutive rows/columns of strided lhs, rhs and dst.
STRIDE_PADDING = {"lhs": 1, "rhs": 2, "dst": 3}


class LayoutStyle(Enum):
    PACKED = "packed"
    STRIDED = "strided"
    BLOCKED = "blocked"
    BLOCKED_STRIDED = "blocked_strided"

    @property
    def is_blocked(self) -> bool:
        return self in (LayoutStyle.BLOCKED, LayoutStyle.BLOCKED_STRIDED)

    @property
    def is_strided(self) -> bool:
        return self in (LayoutStyle.STRIDED, LayoutStyle.BLOCKED_STRIDED)


@dataclass(frozen=True)
class Variant:
    """One structural configuration of a multiplication.

    Attributes:
        orders: Storage orders of lhs, rhs and dst.
        style: How operand storage is laid out.
        thread_count: Number of workers handed to the multiplication.
        path: Name of the multiplication path.
        kernel_order: Order inside kernel blocks, for blocked styles only.
    """

    orders: ORDERS_DTYPE
    style: LayoutStyle
    thread_count: int
    path: str
    kernel_order: Order | None = None

    @property
    def order_label(self) -> str:
        return "".join(order.short for order in self.orders)

    @property
    def label(self) -> str:
        label = f"{self.path}:{self.order_label}:{self.style.value}"
        if self.kernel_order is not None:
            label += f"/{self.kernel_order.short}"
        return f"{label}:t{self.thread_count}"

    def __str__(self) -> str:
        return self.label


def make_layout(
    variant: Variant, operand: str, rows: int, cols: int, kernel_rows: int = 1, kernel_cols: int = 1
) -> Layout:
    """Build the layout of one operand under a variant.

    Args:
        variant: Variant being run.
        operand: One of "lhs", "rhs" or "dst".
        rows: Logical rows of the operand.
        cols: Logical columns of the operand.
        kernel_rows: Kernel block rows, for blocked styles.
        kernel_cols: Kernel block columns, for blocked styles.

    Returns:
        The operand's layout.
    """
    order = variant.orders[("lhs", "rhs", "dst").index(operand)]
    padding = STRIDE_PADDING[operand] if variant.style.is_strided else 0
    if variant.style.is_blocked:
        return blocked_layout(rows, cols, order, kernel_rows, kernel_cols, variant.kernel_order, padding)
    if padding:
        return strided_layout(rows, cols, order, padding)
    return packed_layout(rows, cols, order)


class VariantSpace:
    """Lazy, finite and restartable enumeration of the variants of a case.

    Every iteration yields the same variants in the same order. Requested
    axes are narrowed by the spec's policies: a PACKED_LINEAR_RCC spec only
    admits packed RCC operands, a SIMPLE loop structure only one thread.
    """

    def __init__(
        self,
        spec: MultiplicationSpec,
        paths: tuple[str, ...],
        orders: tuple[ORDERS_DTYPE, ...] = ALL_ORDER_COMBINATIONS,
        styles: tuple[LayoutStyle, ...] = (LayoutStyle.PACKED,),
        thread_counts: tuple[int, ...] = (1,),
        kernel_orders: tuple[Order, ...] = (Order.COL_MAJOR, Order.ROW_MAJOR),
    ) -> None:
        if not paths:
            raise ConfigurationError("at least one multiplication path is required", "paths")
        if any(t < 1 for t in thread_counts):
            raise ConfigurationError(f"thread counts must be positive, got {thread_counts}", "thread_counts")
        orders = tuple(dict.fromkeys(orders))
        styles = tuple(dict.fromkeys(styles))
        thread_counts = tuple(dict.fromkeys(thread_counts))
        if spec.layout_support == LayoutSupport.PACKED_LINEAR_RCC:
            orders = tuple(o for o in orders if o == RCC_ORDERS)
            styles = tuple(s for s in styles if s == LayoutStyle.PACKED)
        if spec.loop_structure == LoopStructure.SIMPLE:
            thread_counts = (1,)
        self.spec = spec
        self.paths = tuple(paths)
        self.orders = orders
        self.styles = styles
        self.thread_counts = thread_counts
        self.kernel_orders = tuple(dict.fromkeys(kernel_orders))

    def _kernel_orders(self, style: LayoutStyle) -> tuple[Order | None, ...]:
        return self.kernel_orders if style.is_blocked else (None,)

    def __iter__(self) -> Iterator[Variant]:
        for path, orders, style, thread_count in itertools.product(
            self.paths, self.orders, self.styles, self.thread_counts
        ):
            for kernel_order in self._kernel_orders(style):
                yield Variant(orders, style, thread_count, path, kernel_order)

    def __len__(self) -> int:
        per_style = sum(len(self._kernel_orders(style)) for style in self.styles)
        return len(self.paths) * len(self.orders) * len(self.thread_counts) * per_style

    def __repr__(self) -> str:
        return (
            f"VariantSpace(paths={self.paths}, orders={len(self.orders)}, "
            f"styles={[s.value for s in self.styles]}, thread_counts={self.thread_counts}, size={len(self)})"
        )
