"""Unit tests for gemmcheck.spec: policies, requantization and MultiplicationSpec.

Run with: pytest tests/test_spec.py -v
"""

import numpy as np
import pytest

from gemmcheck.errors import ConfigurationError
from gemmcheck.matrix import Matrix, Order, packed_layout
from gemmcheck.oracle.reference import apply_multiplier
from gemmcheck.spec import (
    LayoutSupport,
    LoopStructure,
    MultiplicationSpec,
    PerChannelMultiplier,
    ScalarMultiplier,
    ZeroPointSupport,
    multiply_by_quantized_multiplier,
    natural_zero,
    quantize_multiplier,
)
from gemmcheck.spec.requant import INT32_MAX, INT32_MIN


def _matrix(rows: int, cols: int, order: Order, dtype: type, zero_point: int = 0) -> Matrix:
    return Matrix.from_logical(np.zeros((rows, cols), dtype=dtype), packed_layout(rows, cols, order), zero_point)


class TestNaturalZero:
    """Tests for natural_zero()."""

    def test_uint8_is_128(self) -> None:
        """Unsigned 8-bit symmetric quantization is centered at 128."""
        assert natural_zero(np.uint8) == 128

    @pytest.mark.parametrize("dtype", [np.int8, np.int16, np.int32])
    def test_signed_is_zero(self, dtype: type) -> None:
        """Signed types are centered at 0."""
        assert natural_zero(dtype) == 0


class TestQuantizeMultiplier:
    """Tests for quantize_multiplier()."""

    @pytest.mark.parametrize(
        "real, expected",
        [
            (0.5, (1 << 30, 0)),
            (1.0, (1 << 30, 1)),
            (0.25, (1 << 30, -1)),
            (0.75, (3 << 29, 0)),
            (0.0, (0, 0)),
        ],
    )
    def test_known_values(self, real: float, expected: tuple[int, int]) -> None:
        """Mantissa is normalized into [2**30, 2**31) and the exponent carries the scale."""
        assert quantize_multiplier(real) == expected

    def test_encoded_value_round_trips(self) -> None:
        """mantissa * 2**(exponent - 31) reproduces the real multiplier to 31 bits."""
        for real in (1e-5, 0.0123, 0.3, 1.7, 42.0):
            mantissa, exponent = quantize_multiplier(real)
            assert (1 << 30) <= mantissa < (1 << 31)
            assert mantissa * 2.0 ** (exponent - 31) == pytest.approx(real, rel=1e-9)

    @pytest.mark.parametrize("real", [-0.5, float("nan"), float("inf"), 2.0**40, 2.0**-40])
    def test_rejects_unencodable(self, real: float) -> None:
        """Negative, non-finite and out-of-range multipliers raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            quantize_multiplier(real)


class TestMultiplyByQuantizedMultiplier:
    """Tests for the fixed-point rescaling shared by the kernels."""

    def test_unit_multiplier_is_identity(self) -> None:
        """A multiplier of exactly 1.0 leaves accumulators unchanged."""
        x = np.array([5, -7, 100, 0, -12345], dtype=np.int64)
        mantissa, exponent = quantize_multiplier(1.0)
        np.testing.assert_array_equal(multiply_by_quantized_multiplier(x, mantissa, exponent), x)

    def test_half(self) -> None:
        """Scaling by 0.5 rounds to nearest on exact values."""
        x = np.array([6, -6, 100, -100], dtype=np.int64)
        result = multiply_by_quantized_multiplier(x, 1 << 30, 0)
        np.testing.assert_array_equal(result, [3, -3, 50, -50])

    def test_right_shift_rounds_half_away_from_zero(self) -> None:
        """The power-of-two division rounds ties away from zero."""
        x = np.array([100, -10, 10], dtype=np.int64)
        result = multiply_by_quantized_multiplier(x, 1 << 30, -1)
        np.testing.assert_array_equal(result, [25, -3, 3])

    def test_saturates_int32_min_squared(self) -> None:
        """INT32_MIN * INT32_MIN is the single saturating case of the doubling high multiply."""
        from gemmcheck.spec.requant import saturating_rounding_doubling_high_mul

        result = saturating_rounding_doubling_high_mul(np.array([INT32_MIN]), np.array([INT32_MIN]))
        assert int(result[0]) == INT32_MAX

    def test_matches_scalar_reference(self) -> None:
        """Vectorized rescaling agrees with the scalar integer implementation."""
        rng = np.random.default_rng(7)
        x = rng.integers(INT32_MIN, INT32_MAX, size=200, endpoint=True)
        mantissa = rng.integers(1 << 30, 1 << 31, size=200)
        exponent = rng.integers(-31, 31, size=200)
        vectorized = multiply_by_quantized_multiplier(x, mantissa, exponent)
        scalar = [apply_multiplier(int(a), int(m), int(e)) for a, m, e in zip(x, mantissa, exponent)]
        np.testing.assert_array_equal(vectorized, scalar)


class TestMultipliers:
    """Tests for ScalarMultiplier and PerChannelMultiplier."""

    def test_zero_mantissa_is_unset(self) -> None:
        """ScalarMultiplier(0, e) encodes "no multiplier"."""
        assert not ScalarMultiplier(0, 5).is_set
        assert ScalarMultiplier(1 << 30).is_set

    def test_scalar_arrays_broadcast(self) -> None:
        """A scalar multiplier expands to one pair per destination row."""
        mantissa, exponent = ScalarMultiplier(1 << 30, -2).arrays(3)
        np.testing.assert_array_equal(mantissa, [1 << 30] * 3)
        np.testing.assert_array_equal(exponent, [-2] * 3)

    def test_per_channel_lengths_must_match(self) -> None:
        """Mantissa and exponent arrays of unequal length are rejected."""
        with pytest.raises(ConfigurationError):
            PerChannelMultiplier((1 << 30, 1 << 30), (0,))

    def test_per_channel_row_lookup(self) -> None:
        """for_row indexes the channel by destination row."""
        multiplier = PerChannelMultiplier((1 << 30, 3 << 29), (0, -1))
        assert multiplier.channels == 2
        assert multiplier.for_row(1) == (3 << 29, -1)

    @pytest.mark.parametrize("mantissa, exponent", [(-1, 0), (1 << 31, 0), (1 << 30, 31), (1 << 30, -32)])
    def test_rejects_out_of_range_pairs(self, mantissa: int, exponent: int) -> None:
        """Mantissas outside [0, 2**31) and exponents outside [-31, 30] are rejected."""
        with pytest.raises(ConfigurationError):
            ScalarMultiplier(mantissa, exponent)


class TestMultiplicationSpecConstruction:
    """Tests for MultiplicationSpec validation at construction time."""

    def test_defaults_are_most_permissive(self) -> None:
        """Defaults: raw int32 output, full clamp range, AUTO/GENERAL/GENERAL policies."""
        spec = MultiplicationSpec()
        assert spec.dst_is_raw
        assert (spec.clamp_min, spec.clamp_max) == (INT32_MIN, INT32_MAX)
        assert spec.loop_structure == LoopStructure.AUTO
        assert spec.layout_support == LayoutSupport.GENERAL
        assert spec.zero_point_support == ZeroPointSupport.GENERAL
        assert spec.bias is None and not spec.has_multiplier

    def test_float_clamp_defaults(self) -> None:
        """Float destinations clamp to the finite range of the type."""
        spec = MultiplicationSpec(accum_dtype=np.float32, dst_dtype=np.float32)
        assert spec.clamp_max == float(np.finfo(np.float32).max)
        assert spec.is_float

    def test_clamp_min_above_max_rejected(self) -> None:
        """clamp_min must not exceed clamp_max."""
        with pytest.raises(ConfigurationError, match="clamp_min"):
            MultiplicationSpec(dst_dtype=np.int8, clamp_min=10, clamp_max=-10)

    def test_clamp_outside_destination_rejected(self) -> None:
        """Clamp bounds must be representable in the destination type."""
        with pytest.raises(ConfigurationError):
            MultiplicationSpec(dst_dtype=np.int8, clamp_max=300)

    def test_float_accumulator_needs_float_destination(self) -> None:
        """A float accumulator cannot produce an integer destination."""
        with pytest.raises(ConfigurationError):
            MultiplicationSpec(accum_dtype=np.float32, dst_dtype=np.int8)

    def test_unsupported_accumulator_rejected(self) -> None:
        """Only int32, float32 and float64 accumulators are supported."""
        with pytest.raises(ConfigurationError):
            MultiplicationSpec(accum_dtype=np.int16, dst_dtype=np.int16)

    def test_requantization_rejected_for_raw_destination(self) -> None:
        """A set multiplier on a raw int32 destination is a configuration error."""
        with pytest.raises(ConfigurationError, match="raw"):
            MultiplicationSpec(requantization=ScalarMultiplier(1 << 30))

    def test_unset_multiplier_allowed_for_raw_destination(self) -> None:
        """An unset multiplier is equivalent to no requantization."""
        spec = MultiplicationSpec(requantization=ScalarMultiplier(0))
        assert not spec.has_multiplier
        assert spec.multiplier_arrays(4) is None

    def test_invalid_policy_rejected(self) -> None:
        """Policies must be members of their enums."""
        with pytest.raises(ConfigurationError):
            MultiplicationSpec(loop_structure="fast")

    def test_bias_stored_read_only_in_accumulator_type(self) -> None:
        """Bias is converted to the accumulator type and frozen."""
        spec = MultiplicationSpec(dst_dtype=np.int8, bias=[1, 2, 3])
        assert spec.bias.dtype == np.int32
        assert not spec.bias.flags.writeable

    def test_fingerprint_tracks_fields(self) -> None:
        """Equal declarations share a fingerprint, different bias values do not."""
        a = MultiplicationSpec(dst_dtype=np.int8, bias=[1, 2])
        b = MultiplicationSpec(dst_dtype=np.int8, bias=[1, 2])
        c = MultiplicationSpec(dst_dtype=np.int8, bias=[1, 3])
        assert a.fingerprint() == b.fingerprint()
        assert a.fingerprint() != c.fingerprint()


class TestLoopStructureResolution:
    """Tests for resolve_loop_structure()."""

    def test_auto_small_is_simple(self) -> None:
        """AUTO picks SIMPLE for small problems."""
        assert MultiplicationSpec().resolve_loop_structure(4, 4, 4) == LoopStructure.SIMPLE

    def test_auto_large_is_general(self) -> None:
        """AUTO picks GENERAL for large problems."""
        assert MultiplicationSpec().resolve_loop_structure(64, 64, 64) == LoopStructure.GENERAL

    def test_explicit_policy_kept(self) -> None:
        """Explicit policies are not overridden by the problem size."""
        spec = MultiplicationSpec(loop_structure=LoopStructure.GENERAL)
        assert spec.resolve_loop_structure(1, 1, 1) == LoopStructure.GENERAL


class TestCheckBindings:
    """Tests for binding a spec to operand types and zero points."""

    def test_per_channel_length_must_equal_rows(self) -> None:
        """Per-channel multiplier length must equal destination rows."""
        spec = MultiplicationSpec(dst_dtype=np.int8, requantization=PerChannelMultiplier((1 << 30,) * 3, (0,) * 3))
        spec.check_bindings(3, (np.int8, np.int8), (0, 0, 0))
        with pytest.raises(ConfigurationError, match="channels"):
            spec.check_bindings(4, (np.int8, np.int8), (0, 0, 0))

    def test_bias_length_must_equal_rows(self) -> None:
        """Bias length must equal destination rows."""
        spec = MultiplicationSpec(dst_dtype=np.int8, bias=[0, 0])
        with pytest.raises(ConfigurationError, match="bias"):
            spec.check_bindings(3, (np.int8, np.int8), (0, 0, 0))

    def test_symmetric_requires_natural_zero(self) -> None:
        """SYMMETRIC zero-point support only accepts the natural zero of each type."""
        spec = MultiplicationSpec(dst_dtype=np.uint8, zero_point_support=ZeroPointSupport.SYMMETRIC)
        spec.check_bindings(2, (np.uint8, np.uint8), (128, 128, 128))
        with pytest.raises(ConfigurationError, match="symmetric"):
            spec.check_bindings(2, (np.uint8, np.uint8), (128, 127, 128))

    def test_zero_point_must_be_representable(self) -> None:
        """Zero points outside the operand type are rejected."""
        with pytest.raises(ConfigurationError):
            MultiplicationSpec(dst_dtype=np.int8).check_bindings(2, (np.int8, np.int8), (200, 0, 0))

    def test_raw_destination_zero_point_must_be_zero(self) -> None:
        """Raw accumulator output has no zero point."""
        with pytest.raises(ConfigurationError):
            MultiplicationSpec().check_bindings(2, (np.int8, np.int8), (0, 0, 5))

    def test_operand_type_must_match_accumulator(self) -> None:
        """Float operands cannot feed an integer accumulator."""
        with pytest.raises(ConfigurationError):
            MultiplicationSpec().check_bindings(2, (np.float32, np.int8), (0, 0, 0))


class TestCheckOperands:
    """Tests for the runtime capability check."""

    def test_shape_mismatch_rejected(self) -> None:
        """lhs cols must equal rhs rows."""
        spec = MultiplicationSpec()
        lhs = _matrix(2, 3, Order.ROW_MAJOR, np.int8)
        rhs = _matrix(4, 5, Order.COL_MAJOR, np.int8)
        dst = _matrix(2, 5, Order.COL_MAJOR, np.int32)
        with pytest.raises(ConfigurationError, match="shape"):
            spec.check_operands(lhs, rhs, dst, 1)

    def test_simple_loop_rejects_multiple_threads(self) -> None:
        """The SIMPLE loop structure only supports a single thread."""
        spec = MultiplicationSpec(loop_structure=LoopStructure.SIMPLE)
        lhs = _matrix(2, 3, Order.ROW_MAJOR, np.int8)
        rhs = _matrix(3, 4, Order.COL_MAJOR, np.int8)
        dst = _matrix(2, 4, Order.COL_MAJOR, np.int32)
        spec.check_operands(lhs, rhs, dst, 1)
        with pytest.raises(ConfigurationError, match="one thread"):
            spec.check_operands(lhs, rhs, dst, 2)

    def test_rcc_policy_rejects_other_orders(self) -> None:
        """PACKED_LINEAR_RCC only accepts RowMajor lhs and ColMajor rhs and destination."""
        spec = MultiplicationSpec(layout_support=LayoutSupport.PACKED_LINEAR_RCC)
        lhs = _matrix(2, 3, Order.ROW_MAJOR, np.int8)
        rhs = _matrix(3, 4, Order.COL_MAJOR, np.int8)
        spec.check_operands(lhs, rhs, _matrix(2, 4, Order.COL_MAJOR, np.int32), 1)
        with pytest.raises(ConfigurationError, match="dst"):
            spec.check_operands(lhs, rhs, _matrix(2, 4, Order.ROW_MAJOR, np.int32), 1)

    def test_destination_type_must_match(self) -> None:
        """The destination buffer must have the spec's destination type."""
        lhs = _matrix(2, 3, Order.ROW_MAJOR, np.int8)
        rhs = _matrix(3, 4, Order.COL_MAJOR, np.int8)
        with pytest.raises(ConfigurationError, match="destination type"):
            MultiplicationSpec().check_operands(lhs, rhs, _matrix(2, 4, Order.COL_MAJOR, np.int8), 1)
