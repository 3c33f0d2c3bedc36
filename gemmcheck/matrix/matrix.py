# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from gemmcheck.errors import ConfigurationError
from gemmcheck.matrix.layout import Layout


def padding_fill(dtype: np.dtype) -> int | float:
    """Value written into storage outside the logical extent of an input.

    Any kernel that reads padding picks up this value and produces a visible
    mismatch.
    """
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.floating):
        return float("nan")
    return int(np.iinfo(dtype).max)


@dataclass
class Matrix:
    """A layout together with its flat storage buffer and zero point.

    Attributes:
        layout: Logical shape and storage metadata.
        data: One-dimensional buffer of at least layout.buffer_size elements.
        zero_point: Quantized value representing real zero.
    """

    layout: Layout
    data: np.ndarray
    zero_point: int | float = 0

    def __post_init__(self) -> None:
        if self.data.ndim != 1:
            raise ConfigurationError(f"matrix storage must be one-dimensional, got shape {self.data.shape}", "data")
        if self.data.size < self.layout.buffer_size:
            raise ConfigurationError(
                f"buffer of {self.data.size} elements too small for {self.layout} "
                f"({self.layout.buffer_size} needed)",
                "data",
            )

    @property
    def rows(self) -> int:
        return self.layout.rows

    @property
    def cols(self) -> int:
        return self.layout.cols

    @property
    def dtype(self) -> np.dtype:
        return self.data.dtype

    def element(self, row: int, col: int) -> int | float:
        """Read one logical element through the layout's indexing function."""
        return self.data[self.layout.offset(row, col)].item()

    def logical(self) -> np.ndarray:
        """Return a dense rows x cols copy of the logical contents."""
        return self.data[self.layout.offsets()]

    @classmethod
    def from_logical(cls, values: np.ndarray, layout: Layout, zero_point: int | float = 0) -> Matrix:
        """Store a dense rows x cols array under the given layout.

        Storage outside the logical extent is filled with padding_fill().

        Args:
            values: Dense logical contents.
            layout: Target layout; its shape must equal values.shape.
            zero_point: Zero point of the resulting matrix.

        Returns:
            A new Matrix owning a fresh buffer.
        """
        values = np.asarray(values)
        if values.shape != (layout.rows, layout.cols):
            raise ConfigurationError(f"values of shape {values.shape} do not fit {layout}", "values")
        data = np.full(layout.buffer_size, padding_fill(values.dtype), dtype=values.dtype)
        data[layout.offsets()] = values
        return cls(layout=layout, data=data, zero_point=zero_point)

    def __repr__(self) -> str:
        return f"Matrix({self.layout!r}, dtype={self.dtype}, zero_point={self.zero_point})"
