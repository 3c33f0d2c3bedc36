# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Seeded generation of test cases.

Operand values are bounded so that integer accumulators cannot overflow
int32: with |lhs - zp|, |rhs - zp| <= a and a = floor(sqrt(2**30 / K)), every
dot product stays within 2**30, leaving the other half of the range for bias.
The requantization multiplier is chosen so that typical accumulators span the
destination range instead of saturating at the clamp bounds.
"""

import logging
import math
from dataclasses import dataclass, replace

import numpy as np

from gemmcheck.errors import ConfigurationError
from gemmcheck.harness.case import TestCase
from gemmcheck.harness.shapes import BlockShape
from gemmcheck.harness.variants import ALL_ORDER_COMBINATIONS, LayoutStyle
from gemmcheck.spec.mul_spec import MultiplicationSpec, dtype_limits
from gemmcheck.spec.policy import LayoutSupport, LoopStructure, ZeroPointSupport, natural_zero
from gemmcheck.spec.requant import PerChannelMultiplier, ScalarMultiplier, quantize_multiplier
from gemmcheck.types import ORDERS_DTYPE, SHAPE_DTYPE

logger = logging.getLogger(__name__)

ACCUMULATOR_BUDGET = 1 << 30
BIAS_BUDGET = 1 << 28

# name: (lhs, rhs, accumulator, destination)
DTYPE_FAMILIES = {
    "int8": (np.int8, np.int8, np.int32, np.int8),
    "uint8": (np.uint8, np.uint8, np.int32, np.uint8),
    "int8_int16": (np.int8, np.int8, np.int32, np.int16),
    "int16_int8": (np.int16, np.int8, np.int32, np.int16),
    "int8_raw": (np.int8, np.int8, np.int32, np.int32),
    "float32": (np.float32, np.float32, np.float32, np.float32),
    "float64": (np.float64, np.float64, np.float64, np.float64),
    "float32_float64": (np.float32, np.float32, np.float32, np.float64),
}


def operand_amplitude(dtype: np.dtype, depth: int) -> int:
    """Largest |value - zero_point| keeping a length-depth dot product within budget."""
    lowest, highest = dtype_limits(dtype)
    bound = math.isqrt(ACCUMULATOR_BUDGET // max(depth, 1))
    return max(1, min(highest - lowest, bound))


@dataclass(frozen=True)
class CaseFactory:
    """Builds reproducible TestCases for one type family and policy set.

    The random stream of a case depends only on the seed and the shape, so
    the same (seed, shape) always produces the same operands regardless of
    the order in which cases are built.

    Attributes:
        lhs_dtype: Left operand scalar type.
        rhs_dtype: Right operand scalar type.
        accum_dtype: Accumulator type.
        dst_dtype: Destination type.
        seed: Base seed.
        with_bias: Add a random bias vector.
        per_channel: Use one multiplier per destination row.
        clamp: Narrow the clamp bounds inside the destination range.
        loop_structure: Loop structure policy of generated specs.
        layout_support: Layout support policy of generated specs.
        zero_point_support: Zero-point support policy of generated specs.
    """

    lhs_dtype: type = np.int8
    rhs_dtype: type = np.int8
    accum_dtype: type = np.int32
    dst_dtype: type = np.int8
    seed: int = 0
    with_bias: bool = True
    per_channel: bool = False
    clamp: bool = False
    loop_structure: LoopStructure = LoopStructure.AUTO
    layout_support: LayoutSupport = LayoutSupport.GENERAL
    zero_point_support: ZeroPointSupport = ZeroPointSupport.GENERAL

    @classmethod
    def from_family(cls, family: str, **kwargs) -> "CaseFactory":
        """Factory for one of DTYPE_FAMILIES."""
        if family not in DTYPE_FAMILIES:
            raise ConfigurationError(f"unknown type family {family!r}, expected one of {list(DTYPE_FAMILIES)}")
        lhs, rhs, accum, dst = DTYPE_FAMILIES[family]
        return cls(lhs_dtype=lhs, rhs_dtype=rhs, accum_dtype=accum, dst_dtype=dst, **kwargs)

    def with_options(self, **kwargs) -> "CaseFactory":
        return replace(self, **kwargs)

    @property
    def is_float(self) -> bool:
        return bool(np.issubdtype(self.accum_dtype, np.floating))

    def rng(self, shape: SHAPE_DTYPE) -> np.random.Generator:
        return np.random.default_rng([self.seed, *shape])

    def make_case(
        self,
        name: str,
        shape: SHAPE_DTYPE,
        orders: tuple[ORDERS_DTYPE, ...] = ALL_ORDER_COMBINATIONS,
        styles: tuple[LayoutStyle, ...] = (LayoutStyle.PACKED,),
        thread_counts: tuple[int, ...] = (1,),
        block: BlockShape | None = None,
    ) -> TestCase:
        """Generate operands, zero points and a matching spec for one shape.

        Args:
            name: Case name.
            shape: (M, K, N).
            orders: Storage-order combinations to run.
            styles: Layout styles to run.
            thread_counts: Thread counts to run.
            block: Kernel-block sizes for blocked styles.

        Returns:
            The generated TestCase.

        Raises:
            ConfigurationError: If the generated case is invalid for the
                requested policies.
        """
        rows, depth, cols = shape
        rng = self.rng(shape)
        if self.is_float:
            lhs_zp = rhs_zp = dst_zp = 0
            lhs = rng.uniform(-1.0, 1.0, size=(rows, depth)).astype(self.lhs_dtype)
            rhs = rng.uniform(-1.0, 1.0, size=(depth, cols)).astype(self.rhs_dtype)
            amplitude = 1.0
        else:
            lhs_zp = self._zero_point(rng, self.lhs_dtype)
            rhs_zp = self._zero_point(rng, self.rhs_dtype)
            dst_raw = np.dtype(self.dst_dtype) == np.dtype(self.accum_dtype)
            dst_zp = 0 if dst_raw else self._zero_point(rng, self.dst_dtype)
            amplitude = min(operand_amplitude(self.lhs_dtype, depth), operand_amplitude(self.rhs_dtype, depth))
            lhs = self._int_operand(rng, self.lhs_dtype, (rows, depth), lhs_zp, amplitude)
            rhs = self._int_operand(rng, self.rhs_dtype, (depth, cols), rhs_zp, amplitude)

        spec = self.make_spec(rng, shape, amplitude, dst_zp)
        logger.debug("built case %s shape=%s zero_points=%s %r", name, shape, (lhs_zp, rhs_zp, dst_zp), spec)
        return TestCase(
            name=name,
            spec=spec,
            lhs_values=lhs,
            rhs_values=rhs,
            lhs_zero_point=lhs_zp,
            rhs_zero_point=rhs_zp,
            dst_zero_point=dst_zp,
            orders=orders,
            styles=styles,
            thread_counts=thread_counts,
            block=block or BlockShape(),
        )

    def make_spec(
        self, rng: np.random.Generator, shape: SHAPE_DTYPE, amplitude: float, dst_zero_point: int | float = 0
    ) -> MultiplicationSpec:
        """Random spec (bias, multiplier, clamps) sized for operands of the given amplitude."""
        rows, depth, _ = shape
        # Standard deviation of a dot product of uniform values in [-a, a].
        acc_std = math.sqrt(max(depth, 1)) * amplitude * amplitude / 3.0

        bias = None
        if self.with_bias:
            if self.is_float:
                bias = rng.uniform(-1.0, 1.0, size=rows)
            else:
                bound = int(min(BIAS_BUDGET, max(1.0, acc_std)))
                bias = rng.integers(-bound, bound + 1, size=rows)

        requantization = None
        clamp_min = clamp_max = None
        dst_lowest, dst_highest = dtype_limits(self.dst_dtype)
        if self.is_float:
            if self.clamp:
                clamp_min, clamp_max = -acc_std, acc_std
        else:
            dst_is_raw = np.dtype(self.dst_dtype) == np.dtype(self.accum_dtype)
            if not dst_is_raw:
                requantization = self._multiplier(rng, rows, acc_std, dst_highest - dst_lowest)
            if self.clamp:
                margin = (dst_highest - dst_lowest) // 16
                clamp_min, clamp_max = dst_lowest + margin, dst_highest - margin

        return MultiplicationSpec(
            accum_dtype=self.accum_dtype,
            dst_dtype=self.dst_dtype,
            bias=bias,
            requantization=requantization,
            clamp_min=clamp_min,
            clamp_max=clamp_max,
            loop_structure=self.loop_structure,
            layout_support=self.layout_support,
            zero_point_support=self.zero_point_support,
        )

    def _zero_point(self, rng: np.random.Generator, dtype: type) -> int:
        if self.zero_point_support == ZeroPointSupport.SYMMETRIC:
            return natural_zero(dtype)
        lowest, highest = dtype_limits(dtype)
        return int(rng.integers(lowest, highest + 1))

    @staticmethod
    def _int_operand(
        rng: np.random.Generator, dtype: type, size: tuple[int, int], zero_point: int, amplitude: int
    ) -> np.ndarray:
        lowest, highest = dtype_limits(dtype)
        values = zero_point + rng.integers(-amplitude, amplitude + 1, size=size)
        return np.clip(values, lowest, highest).astype(dtype)

    def _multiplier(
        self, rng: np.random.Generator, rows: int, acc_std: float, dst_span: int
    ) -> ScalarMultiplier | PerChannelMultiplier:
        # Map three standard deviations of the accumulators onto half the destination range.
        real = dst_span / (6.0 * max(acc_std, 1.0))
        if not self.per_channel:
            return ScalarMultiplier(*quantize_multiplier(real))
        pairs = [quantize_multiplier(real * factor) for factor in rng.uniform(0.5, 2.0, size=rows)]
        return PerChannelMultiplier(tuple(m for m, _ in pairs), tuple(e for _, e in pairs))
