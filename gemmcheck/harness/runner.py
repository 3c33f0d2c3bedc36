# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Differential execution of test cases.

For every variant of a case the runner lays the logical operands out anew,
allocates a fresh destination, runs the multiplication path and compares the
logical result with the reference and with the first variant that matched
it. Mismatches are recorded and the remaining variants still run; errors
outside the numeric comparison abort the case only.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import replace

import numpy as np
from tqdm import tqdm

from gemmcheck.errors import ConfigurationError, GemmCheckError, InfrastructureError
from gemmcheck.harness.case import TestCase
from gemmcheck.harness.config import HarnessConfig
from gemmcheck.harness.results import (
    CROSS_VARIANT,
    ORACLE,
    CaseError,
    CaseResult,
    HarnessReport,
    Mismatch,
    VariantResult,
)
from gemmcheck.harness.variants import Variant
from gemmcheck.matrix.allocator import Allocator
from gemmcheck.matrix.matrix import Matrix
from gemmcheck.oracle.cache import OracleCache
from gemmcheck.oracle.compare import Comparison, compare_results
from gemmcheck.oracle.reference import OracleResult, reference_multiply
from gemmcheck.types import MULTIPLY_DTYPE, PATHS_DTYPE
from gemmcheck.utils.errors import capture_error_message

logger = logging.getLogger(__name__)

# Two results that are each within tolerance of the reference can be twice as far apart.
CROSS_VARIANT_SCALE = 2.0


class DifferentialHarness:
    """Runs test cases against one or more multiplication paths.

    Attributes:
        paths: Multiplication implementations by name.
        config: Harness settings.
        allocator: Supplies destination buffers.
        oracle_cache: Reference results keyed by logical multiplication.
    """

    def __init__(
        self,
        paths: PATHS_DTYPE | MULTIPLY_DTYPE,
        config: HarnessConfig | None = None,
        allocator: Allocator | None = None,
        oracle_cache: OracleCache | None = None,
    ) -> None:
        if callable(paths):
            paths = {getattr(paths, "__name__", "multiply"): paths}
        if not paths:
            raise ConfigurationError("at least one multiplication path is required", "paths")
        self.paths: PATHS_DTYPE = dict(paths)
        self.config = config or HarnessConfig()
        self.allocator = allocator or Allocator()
        self.oracle_cache = oracle_cache or OracleCache()

    def oracle(self, case: TestCase) -> OracleResult:
        """Reference result of a case, computed on first use."""

        def compute() -> OracleResult:
            lhs, rhs = case.reference_operands()
            return reference_multiply(case.spec, lhs, rhs, case.dst_zero_point)

        return self.oracle_cache.get(case.oracle_key, compute)

    def run_cases(self, cases: Iterable[TestCase]) -> HarnessReport:
        report = HarnessReport()
        for case in cases:
            report.add(self.run_case(case))
        return report

    def run_build(self, name: str, shape: tuple[int, int, int], build: Callable[[], TestCase]) -> CaseResult:
        """Build a case and run it, recording a construction failure as a case error.

        Args:
            name: Case name, used if construction fails.
            shape: (M, K, N), used if construction fails.
            build: Zero-argument callable returning the TestCase.

        Returns:
            The CaseResult.
        """
        try:
            case = build()
        except ConfigurationError as e:
            logger.error("case %s: invalid configuration: %s", name, e)
            return CaseResult(name=name, shape=shape, error=CaseError.from_exception(name, e))
        return self.run_case(case)

    def run_case(self, case: TestCase) -> CaseResult:
        """Run every variant of a case.

        Args:
            case: The test case.

        Returns:
            CaseResult with per-variant outcomes, mismatches and any error
            that aborted the case.
        """
        result = CaseResult(name=case.name, shape=case.shape, spec=repr(case.spec))
        baseline: tuple[Variant, np.ndarray] | None = None
        try:
            space = case.variants(tuple(self.paths))
            oracle = self.oracle(case)
            result.oracle_elapsed_s = oracle.elapsed_s
            for variant in tqdm(
                space, total=len(space), desc=case.name, unit="variant", disable=not self.config.progress
            ):
                output = self._run_variant(case, variant, oracle, baseline, result)
                if baseline is None and output is not None:
                    baseline = (variant, output)
        except GemmCheckError as e:
            if isinstance(e, InfrastructureError) and e.case_name is None:
                e.case_name = case.name
            result.error = CaseError.from_exception(case.name, e)
            logger.error("case %s aborted after %d variants: %s", case.name, len(result.variants), e)
        finally:
            if not self.config.keep_oracle_results:
                self.oracle_cache.discard(case.oracle_key)

        if result.error is None:
            logger.info(
                "case %s %s: %d variants, %d mismatches",
                case.name, "x".join(map(str, case.shape)), len(result.variants), len(result.mismatches),
            )
        return result

    def _run_variant(
        self,
        case: TestCase,
        variant: Variant,
        oracle: OracleResult,
        baseline: tuple[Variant, np.ndarray] | None,
        result: CaseResult,
    ) -> np.ndarray | None:
        """Run one variant and record its outcome.

        Returns:
            The logical output if it matched the oracle, otherwise None.
        """
        actual, elapsed = self._execute(case, variant)
        comparison = compare_results(oracle.values, actual, oracle.depth, accum_dtype=case.spec.accum_dtype)
        ok = comparison.ok
        if not comparison.ok:
            self._record(case, variant, comparison, ORACLE, "oracle", oracle.values, actual, result, 1.0)
        elif baseline is not None and self.config.check_cross_variant:
            base_variant, base_output = baseline
            cross = compare_results(
                base_output, actual, oracle.depth, scale=CROSS_VARIANT_SCALE, accum_dtype=case.spec.accum_dtype
            )
            if not cross.ok:
                ok = False
                reference = base_variant.label
                self._record(
                    case, variant, cross, CROSS_VARIANT, reference, base_output, actual, result, CROSS_VARIANT_SCALE
                )

        result.variants.append(
            VariantResult(
                variant=variant,
                ok=ok,
                max_abs_err=comparison.max_abs_err,
                elapsed_s=elapsed,
                output=actual if self.config.keep_outputs else None,
            )
        )
        logger.debug("case %s %s: ok=%s max_err=%.3g (%.4fs)", case.name, variant, ok, comparison.max_abs_err, elapsed)
        return actual if comparison.ok else None

    def _execute(self, case: TestCase, variant: Variant) -> tuple[np.ndarray, float]:
        """Lay out the operands, allocate a destination and run the path once.

        Raises:
            ConfigurationError: If the spec rejects the variant's operands.
            InfrastructureError: If allocation fails, buffers alias or the
                multiplication raises.
        """
        lhs, rhs = case.operands(variant)
        _, _, dst_layout = case.layouts(variant)
        dst = self.allocator.allocate(dst_layout, case.spec.dst_dtype, case.dst_zero_point)
        self._check_not_aliased(case, dst, lhs, rhs)
        case.spec.check_operands(lhs, rhs, dst, variant.thread_count)

        multiply = self.paths[variant.path]
        start = time.perf_counter()
        try:
            out = multiply(case.spec, lhs, rhs, dst, variant.thread_count)
        except GemmCheckError:
            raise
        except Exception as e:
            raise InfrastructureError(
                f"{variant.path} raised while running {variant}:\n{capture_error_message(e)}", case.name
            ) from e
        elapsed = time.perf_counter() - start
        if not isinstance(out, Matrix):
            raise InfrastructureError(f"{variant.path} returned {type(out).__name__}, expected Matrix", case.name)
        return out.logical(), elapsed

    @staticmethod
    def _check_not_aliased(case: TestCase, dst: Matrix, lhs: Matrix, rhs: Matrix) -> None:
        for name, operand in (("lhs", lhs), ("rhs", rhs)):
            if np.shares_memory(dst.data, operand.data):
                raise InfrastructureError(f"destination buffer aliases {name}", case.name)

    def _record(
        self,
        case: TestCase,
        variant: Variant,
        comparison: Comparison,
        kind: str,
        reference: str,
        expected: np.ndarray,
        actual: np.ndarray,
        result: CaseResult,
        scale: float,
    ) -> None:
        mismatch = Mismatch(
            case_name=case.name,
            shape=case.shape,
            spec=repr(case.spec),
            variant=variant.label,
            kind=kind,
            reference=reference,
            element=comparison.first_bad,
            expected=comparison.expected_value,
            actual=comparison.actual_value,
            num_bad=comparison.num_bad,
            max_abs_err=comparison.max_abs_err,
            tolerance=comparison.tolerance,
        )
        # Kept even if the rerun raises.
        result.mismatches.append(mismatch)
        if self.config.rerun_mismatches:
            mismatch = replace(mismatch, reproducible=self._classify(case, variant, expected, actual, scale))
            result.mismatches[-1] = mismatch
        logger.warning("mismatch in case %s:\n%s\n%s", case.name, mismatch.describe(), comparison.summary)

    def _classify(
        self, case: TestCase, variant: Variant, expected: np.ndarray, actual: np.ndarray, scale: float
    ) -> bool:
        """Re-run a mismatching variant once.

        Returns:
            True if the rerun produced the same output and still mismatched,
            False if it differed (suspected non-determinism).
        """
        rerun, _ = self._execute(case, variant)
        depth, accum_dtype = case.depth, case.spec.accum_dtype
        same_output = compare_results(actual, rerun, depth, scale=0.0, accum_dtype=accum_dtype).ok
        still_bad = not compare_results(expected, rerun, depth, scale=scale, accum_dtype=accum_dtype).ok
        if not same_output:
            logger.warning("case %s %s: rerun produced a different result", case.name, variant)
        return same_output and still_bad
