# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""Fixed-point requantization multipliers.

A multiplier is a tagged variant: either one (mantissa, exponent) pair applied
to every destination row, or one pair per destination row (channel). The
mantissa is a Q0.31 fixed-point value; the real multiplier it encodes is
``mantissa * 2**(exponent - 31)``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from gemmcheck.errors import ConfigurationError

INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1
MIN_EXPONENT = -31
MAX_EXPONENT = 30


def _check_pair(mantissa: int, exponent: int) -> None:
    if not 0 <= mantissa <= INT32_MAX:
        raise ConfigurationError(f"multiplier mantissa {mantissa} outside [0, {INT32_MAX}]", field="mantissa")
    if not MIN_EXPONENT <= exponent <= MAX_EXPONENT:
        raise ConfigurationError(
            f"multiplier exponent {exponent} outside [{MIN_EXPONENT}, {MAX_EXPONENT}]", field="exponent"
        )


@dataclass(frozen=True)
class ScalarMultiplier:
    """One fixed-point multiplier shared by all destination rows.

    A zero mantissa means the multiplier is unset and no rescaling happens.
    """

    mantissa: int
    exponent: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "mantissa", int(self.mantissa))
        object.__setattr__(self, "exponent", int(self.exponent))
        _check_pair(self.mantissa, self.exponent)

    @property
    def is_set(self) -> bool:
        return self.mantissa != 0

    @property
    def channels(self) -> int | None:
        return None

    def for_row(self, row: int) -> tuple[int, int]:
        return self.mantissa, self.exponent

    def arrays(self, rows: int) -> tuple[np.ndarray, np.ndarray]:
        """Broadcast the multiplier to one (mantissa, exponent) per destination row."""
        return np.full(rows, self.mantissa, dtype=np.int64), np.full(rows, self.exponent, dtype=np.int64)


@dataclass(frozen=True)
class PerChannelMultiplier:
    """One fixed-point multiplier per destination row (output channel)."""

    mantissa: tuple[int, ...]
    exponent: tuple[int, ...]

    def __post_init__(self) -> None:
        mantissa = tuple(int(m) for m in self.mantissa)
        exponent = tuple(int(e) for e in self.exponent)
        if len(mantissa) != len(exponent):
            raise ConfigurationError(
                f"per-channel mantissa has {len(mantissa)} entries but exponent has {len(exponent)}",
                field="requantization",
            )
        for m, e in zip(mantissa, exponent):
            _check_pair(m, e)
        object.__setattr__(self, "mantissa", mantissa)
        object.__setattr__(self, "exponent", exponent)

    @property
    def is_set(self) -> bool:
        return True

    @property
    def channels(self) -> int | None:
        return len(self.mantissa)

    def for_row(self, row: int) -> tuple[int, int]:
        return self.mantissa[row], self.exponent[row]

    def arrays(self, rows: int) -> tuple[np.ndarray, np.ndarray]:
        if rows != len(self.mantissa):
            raise ConfigurationError(
                f"per-channel multiplier has {len(self.mantissa)} channels, destination has {rows} rows",
                field="requantization",
            )
        return np.asarray(self.mantissa, dtype=np.int64), np.asarray(self.exponent, dtype=np.int64)


Multiplier = ScalarMultiplier | PerChannelMultiplier


def quantize_multiplier(real_multiplier: float) -> tuple[int, int]:
    """Convert a non-negative real multiplier into a (mantissa, exponent) pair.

    Args:
        real_multiplier: Value to encode.

    Returns:
        (mantissa, exponent) with mantissa in [2**30, 2**31) for non-zero inputs.

    Raises:
        ConfigurationError: If the multiplier is negative or not finite.

    Example:
        >>> quantize_multiplier(0.5)
        (1073741824, 0)
    """
    if not math.isfinite(real_multiplier) or real_multiplier < 0:
        raise ConfigurationError(f"cannot quantize multiplier {real_multiplier}", field="requantization")
    if real_multiplier == 0.0:
        return 0, 0
    fraction, exponent = math.frexp(real_multiplier)
    mantissa = int(round(fraction * (1 << 31)))
    if mantissa == (1 << 31):
        mantissa //= 2
        exponent += 1
    if not MIN_EXPONENT <= exponent <= MAX_EXPONENT:
        raise ConfigurationError(f"multiplier {real_multiplier} out of encodable range", field="requantization")
    return mantissa, exponent


def wrap_int32(values: np.ndarray) -> np.ndarray:
    """Two's-complement wrap of int64 values into the int32 range, kept as int64."""
    return values.astype(np.int32).astype(np.int64)


def saturating_rounding_doubling_high_mul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """High 32 bits of 2*a*b with round-to-nearest; saturates INT32_MIN * INT32_MIN."""
    a = np.asarray(a, dtype=np.int64)
    b = np.asarray(b, dtype=np.int64)
    overflow = (a == b) & (a == INT32_MIN)
    ab = a * b
    nudge = np.where(ab >= 0, 1 << 30, 1 - (1 << 30))
    total = ab + nudge
    high = np.where(total >= 0, total // (1 << 31), -((-total) // (1 << 31)))
    return np.where(overflow, INT32_MAX, high)


def rounding_divide_by_pot(x: np.ndarray, exponent: np.ndarray) -> np.ndarray:
    """Arithmetic right shift by exponent rounding half away from zero."""
    x = np.asarray(x, dtype=np.int64)
    exponent = np.asarray(exponent, dtype=np.int64)
    mask = np.left_shift(np.int64(1), exponent) - 1
    remainder = x & mask
    threshold = (mask >> 1) + (x < 0)
    return (x >> exponent) + (remainder > threshold)


def multiply_by_quantized_multiplier(x: np.ndarray, mantissa: np.ndarray, exponent: np.ndarray) -> np.ndarray:
    """Scale int32 accumulators by mantissa * 2**(exponent - 31).

    Args:
        x: Accumulator values (int32 range), any shape.
        mantissa: Fixed-point mantissas, broadcastable against x.
        exponent: Exponents, broadcastable against x.

    Returns:
        Rescaled values as int64 holding int32-range results.
    """
    exponent = np.asarray(exponent, dtype=np.int64)
    left_shift = np.maximum(exponent, 0)
    right_shift = np.maximum(-exponent, 0)
    shifted = wrap_int32(np.left_shift(np.asarray(x, dtype=np.int64), left_shift))
    return rounding_divide_by_pot(saturating_rounding_doubling_high_mul(shifted, mantissa), right_shift)
