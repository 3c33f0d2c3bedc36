# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Test passes over the shape catalogs.

Each pass builds one TestCase per shape with a CaseFactory and runs it on a
DifferentialHarness. A case that cannot be built is recorded as an error and
the remaining shapes still run.
"""

from collections.abc import Iterable

from gemmcheck.harness.case import TestCase
from gemmcheck.harness.factory import CaseFactory
from gemmcheck.harness.results import HarnessReport
from gemmcheck.harness.runner import DifferentialHarness
from gemmcheck.harness.shapes import (
    DEEP_RCC_SHAPES,
    DEEP_SHAPES,
    MISC_SHAPES,
    NON_LINEAR_CASES,
    SHALLOW_SHAPES,
    SQUARE_SIZES,
    BlockShape,
    narrow_shapes,
    square_shapes,
)
from gemmcheck.harness.variants import ALL_ORDER_COMBINATIONS, RCC_ORDERS, LayoutStyle
from gemmcheck.types import ORDERS_DTYPE, SHAPE_DTYPE

NON_LINEAR_STYLES = (LayoutStyle.STRIDED, LayoutStyle.BLOCKED, LayoutStyle.BLOCKED_STRIDED)


def _shape_label(shape: SHAPE_DTYPE) -> str:
    return "x".join(str(d) for d in shape)


def run_shapes(
    harness: DifferentialHarness,
    factory: CaseFactory | None,
    prefix: str,
    shapes: Iterable[SHAPE_DTYPE],
    orders: tuple[ORDERS_DTYPE, ...] = ALL_ORDER_COMBINATIONS,
    styles: tuple[LayoutStyle, ...] = (LayoutStyle.PACKED,),
    block: BlockShape | None = None,
) -> HarnessReport:
    """Run one case per shape with every configured thread count.

    Args:
        harness: Harness executing the cases.
        factory: Case generator. None uses an int8 factory seeded from the
            harness config.
        prefix: Prefix of the case names.
        shapes: Shapes to run.
        orders: Storage-order combinations of every case.
        styles: Layout styles of every case.
        block: Kernel-block sizes for blocked styles.

    Returns:
        HarnessReport with one CaseResult per shape.
    """
    factory = factory or CaseFactory(seed=harness.config.seed)
    thread_counts = harness.config.resolved_thread_counts()
    report = HarnessReport()
    for shape in shapes:
        name = f"{prefix}_{_shape_label(shape)}"

        def build(name: str = name, shape: SHAPE_DTYPE = shape) -> TestCase:
            return factory.make_case(name, shape, orders, styles, thread_counts, block)

        report.add(harness.run_build(name, shape, build))
    return report


def small_shape_pass(
    harness: DifferentialHarness, factory: CaseFactory | None = None, sizes: tuple[int, ...] = SQUARE_SIZES
) -> HarnessReport:
    """Square shapes under every order combination the spec allows."""
    return run_shapes(harness, factory, "square", square_shapes(sizes))


def packed_rcc_pass(
    harness: DifferentialHarness, factory: CaseFactory | None = None, sizes: tuple[int, ...] = SQUARE_SIZES
) -> HarnessReport:
    """Square shapes and the deepest reduction, restricted to packed linear RowMajor/ColMajor/ColMajor operands."""
    shapes = square_shapes(sizes) + list(DEEP_RCC_SHAPES)
    return run_shapes(harness, factory, "rcc", shapes, orders=(RCC_ORDERS,))


def non_linear_pass(
    harness: DifferentialHarness,
    factory: CaseFactory | None = None,
    cases: tuple[tuple[SHAPE_DTYPE, BlockShape], ...] = NON_LINEAR_CASES,
) -> HarnessReport:
    """Strided and kernel-blocked layouts, each block shape with its own shape."""
    report = HarnessReport()
    for shape, block in cases:
        prefix = f"non_linear_k{block.rows}x{block.depth}x{block.cols}"
        report.extend(run_shapes(harness, factory, prefix, [shape], styles=NON_LINEAR_STYLES, block=block))
    return report


def misc_pass(harness: DifferentialHarness, factory: CaseFactory | None = None) -> HarnessReport:
    return run_shapes(harness, factory, "misc", MISC_SHAPES)


def deep_pass(harness: DifferentialHarness, factory: CaseFactory | None = None) -> HarnessReport:
    """Long reductions under every order combination. The deepest shape runs in packed_rcc_pass."""
    return run_shapes(harness, factory, "deep", DEEP_SHAPES)


def shallow_pass(harness: DifferentialHarness, factory: CaseFactory | None = None) -> HarnessReport:
    return run_shapes(harness, factory, "shallow", SHALLOW_SHAPES)


def narrow_pass(harness: DifferentialHarness, factory: CaseFactory | None = None) -> HarnessReport:
    return run_shapes(harness, factory, "narrow", narrow_shapes())


ALL_PASSES = {
    "small": small_shape_pass,
    "rcc": packed_rcc_pass,
    "non_linear": non_linear_pass,
    "misc": misc_pass,
    "deep": deep_pass,
    "shallow": shallow_pass,
    "narrow": narrow_pass,
}


def run_all_passes(
    harness: DifferentialHarness, factory: CaseFactory | None = None, names: Iterable[str] | None = None
) -> HarnessReport:
    """Run the named passes (all of them by default) into one report."""
    report = HarnessReport()
    for name in names or ALL_PASSES:
        report.extend(ALL_PASSES[name](harness, factory))
    return report
