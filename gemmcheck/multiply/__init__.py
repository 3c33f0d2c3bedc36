# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Multiplication implementations validated by the harness.

Each implementation follows the MULTIPLY_DTYPE contract:
(spec, lhs, rhs, dst, thread_count) -> dst.
"""

from gemmcheck.multiply.kernels import TILE_COLS, TILE_ROWS, apply_epilogue, blocked_multiply, naive_multiply

DEFAULT_PATHS = {"blocked": blocked_multiply, "naive": naive_multiply}

__all__ = ["DEFAULT_PATHS", "TILE_COLS", "TILE_ROWS", "apply_epilogue", "blocked_multiply", "naive_multiply"]
