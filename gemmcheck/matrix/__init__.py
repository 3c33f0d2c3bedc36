# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from gemmcheck.matrix.allocator import Allocator
from gemmcheck.matrix.layout import KernelLayout, Layout, Order, blocked_layout, packed_layout, strided_layout
from gemmcheck.matrix.matrix import Matrix, padding_fill

__all__ = [
    "Allocator",
    "KernelLayout",
    "Layout",
    "Matrix",
    "Order",
    "blocked_layout",
    "packed_layout",
    "padding_fill",
    "strided_layout",
]
