# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging

import numpy as np

from gemmcheck.errors import InfrastructureError
from gemmcheck.matrix.layout import Layout
from gemmcheck.matrix.matrix import Matrix

logger = logging.getLogger(__name__)


class Allocator:
    """Supplies zero-initialized destination buffers.

    Every call returns a new buffer; ownership passes to the caller for the
    lifetime of one comparison.

    Attributes:
        num_allocations: Number of buffers handed out so far.
        bytes_allocated: Total size of those buffers in bytes.
    """

    def __init__(self) -> None:
        self.num_allocations = 0
        self.bytes_allocated = 0

    def allocate(self, layout: Layout, dtype: np.dtype, zero_point: int | float = 0) -> Matrix:
        """Allocate a zero-initialized matrix.

        Args:
            layout: Layout of the matrix.
            dtype: Scalar type.
            zero_point: Zero point recorded on the matrix.

        Returns:
            A Matrix backed by a fresh buffer.

        Raises:
            InfrastructureError: If the buffer cannot be allocated.
        """
        try:
            data = np.zeros(layout.buffer_size, dtype=dtype)
        except MemoryError as e:
            raise InfrastructureError(
                f"failed to allocate {layout.buffer_size} x {np.dtype(dtype)} for {layout}"
            ) from e
        self.num_allocations += 1
        self.bytes_allocated += data.nbytes
        logger.debug("allocated %d bytes for %r", data.nbytes, layout)
        return Matrix(layout=layout, data=data, zero_point=zero_point)

    def __repr__(self) -> str:
        return f"Allocator(num_allocations={self.num_allocations}, bytes_allocated={self.bytes_allocated})"
