# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""Shape catalogs exercised by the differential passes. Shapes are (M, K, N)."""

from dataclasses import dataclass

from gemmcheck.types import SHAPE_DTYPE

SMALL_SIZES = (1, 2, 3, 4, 5, 6, 7, 8, 9, 10)
TILE_MULTIPLE_SIZES = (16, 32, 48, 64)
POT_MINUS_ONE_SIZES = (15, 31, 63)
POT_PLUS_ONE_SIZES = (17, 33, 65)
SQUARE_SIZES = SMALL_SIZES + TILE_MULTIPLE_SIZES + POT_MINUS_ONE_SIZES + POT_PLUS_ONE_SIZES

MISC_SHAPES: tuple[SHAPE_DTYPE, ...] = (
    (2, 3, 4),
    (7, 6, 5),
    (12, 23, 6),
    (19, 3, 11),
    (3, 10, 17),
    (30, 21, 43),
    (7, 57, 9),
    (49, 69, 71),
    (38, 111, 29),
    (87, 98, 76),
    (16, 96, 16),
    (16, 88, 16),
    (16, 84, 16),
    (16, 92, 16),
    (16, 82, 16),
    (16, 81, 16),
    (16, 95, 16),
    (3, 128, 5),
)

# Long reductions: accumulation precision and overflow.
DEEP_RCC_SHAPES: tuple[SHAPE_DTYPE, ...] = ((1, 50001, 1),)
DEEP_SHAPES: tuple[SHAPE_DTYPE, ...] = ((5, 5001, 4), (9, 1025, 10))

SHALLOW_SHAPES: tuple[SHAPE_DTYPE, ...] = ((101, 1, 103), (71, 2, 53), (51, 3, 73), (51, 4, 43))

NARROW_WIDTHS = (1, 2, 3, 4, 5, 8)


def square_shapes(sizes: tuple[int, ...] = SQUARE_SIZES) -> list[SHAPE_DTYPE]:
    return [(size, size, size) for size in sizes]


def narrow_shapes(widths: tuple[int, ...] = NARROW_WIDTHS) -> list[SHAPE_DTYPE]:
    """Shapes where one of M or N is tiny and the others are not."""
    shapes: list[SHAPE_DTYPE] = []
    for width in widths:
        shapes.extend([(width, 12, 13), (15, 19, width), (width, 123, 137), (158, 119, width)])
    return shapes


@dataclass(frozen=True)
class BlockShape:
    """Kernel-block sizes along M, K and N for non-linear layouts.

    LHS uses rows x depth blocks, RHS depth x cols, destination rows x cols.
    """

    rows: int = 1
    depth: int = 1
    cols: int = 1


NON_LINEAR_CASES: tuple[tuple[SHAPE_DTYPE, BlockShape], ...] = (
    ((10, 11, 12), BlockShape(2, 1, 4)),
    ((10, 12, 11), BlockShape(2, 4, 1)),
    ((8, 2, 4), BlockShape(8, 2, 4)),
    ((24, 32, 16), BlockShape(8, 16, 4)),
)
