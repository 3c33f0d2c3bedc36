"""Shared test utilities and fixtures for pytest."""

import itertools
from collections.abc import Callable

import numpy as np
import pytest

from gemmcheck.errors import ConfigurationError
from gemmcheck.harness import CaseFactory, DifferentialHarness, HarnessConfig
from gemmcheck.matrix import Matrix, Order
from gemmcheck.multiply import DEFAULT_PATHS, blocked_multiply
from gemmcheck.spec import MultiplicationSpec
from gemmcheck.types import MULTIPLY_DTYPE


def corrupt_element(spec: MultiplicationSpec, dst: Matrix, row: int = 0, col: int = 0) -> None:
    """Overwrite one logical destination element with a different in-range value."""
    offset = dst.layout.offset(row, col)
    current = dst.data[offset]
    dst.data[offset] = spec.clamp_min if current != spec.clamp_min else spec.clamp_max


@pytest.fixture
def config() -> HarnessConfig:
    """Harness config with thread counts {1, 2, 4} and no machine-dependent count."""
    return HarnessConfig(thread_counts=(1, 2, 4), max_threads=4, include_max_threads=False)


@pytest.fixture
def harness(config: HarnessConfig) -> DifferentialHarness:
    """Harness validating both built-in multiplication paths."""
    return DifferentialHarness(DEFAULT_PATHS, config)


@pytest.fixture
def factory() -> CaseFactory:
    """int8 -> int8 factory with bias and a scalar multiplier."""
    return CaseFactory(seed=1234)


@pytest.fixture
def faulty_multiply() -> MULTIPLY_DTYPE:
    """Multiply that corrupts element (0, 0) whenever the destination is RowMajor."""

    def faulty(spec: MultiplicationSpec, lhs: Matrix, rhs: Matrix, dst: Matrix, thread_count: int) -> Matrix:
        blocked_multiply(spec, lhs, rhs, dst, thread_count)
        if dst.layout.order == Order.ROW_MAJOR:
            corrupt_element(spec, dst)
        return dst

    return faulty


@pytest.fixture
def flaky_multiply() -> MULTIPLY_DTYPE:
    """Multiply that corrupts its output on every other call, starting with the first."""
    calls = itertools.count()

    def flaky(spec: MultiplicationSpec, lhs: Matrix, rhs: Matrix, dst: Matrix, thread_count: int) -> Matrix:
        blocked_multiply(spec, lhs, rhs, dst, thread_count)
        if next(calls) % 2 == 0:
            corrupt_element(spec, dst, dst.rows - 1, dst.cols - 1)
        return dst

    return flaky


@pytest.fixture
def make_raising_multiply() -> Callable[[Exception, int | None], MULTIPLY_DTYPE]:
    """Build a multiply that raises the given exception, optionally only for one destination row count."""

    def make(error: Exception, only_rows: int | None = None) -> MULTIPLY_DTYPE:
        def raising(spec: MultiplicationSpec, lhs: Matrix, rhs: Matrix, dst: Matrix, thread_count: int) -> Matrix:
            if only_rows is None or dst.rows == only_rows:
                raise error
            return blocked_multiply(spec, lhs, rhs, dst, thread_count)

        return raising

    return make


@pytest.fixture
def unsupported_error() -> ConfigurationError:
    return ConfigurationError("unsupported operand combination", "layout_support")

