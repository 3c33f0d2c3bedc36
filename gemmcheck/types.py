# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from gemmcheck.matrix.matrix import Matrix
    from gemmcheck.spec.mul_spec import MultiplicationSpec

SHAPE_DTYPE = tuple[int, int, int]
ORDERS_DTYPE = tuple[Any, Any, Any]
MULTIPLY_DTYPE = Callable[["MultiplicationSpec", "Matrix", "Matrix", "Matrix", int], "Matrix"]
PATHS_DTYPE = dict[str, MULTIPLY_DTYPE]
