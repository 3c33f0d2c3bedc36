# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from gemmcheck.errors import GemmCheckError, NumericMismatchError
from gemmcheck.harness.variants import Variant
from gemmcheck.types import SHAPE_DTYPE
from gemmcheck.utils.errors import capture_error_message

ORACLE = "oracle"
CROSS_VARIANT = "cross_variant"


@dataclass(frozen=True)
class Mismatch:
    """A variant whose result differed from its reference beyond tolerance.

    Attributes:
        case_name: Name of the test case.
        shape: (M, K, N) of the multiplication.
        spec: Short description of the MultiplicationSpec.
        variant: Label of the failing variant.
        kind: ORACLE, or CROSS_VARIANT when compared with an earlier variant.
        reference: Label of what the result was compared with.
        element: (row, col) of the first differing element.
        expected: Reference value at element.
        actual: Result value at element.
        num_bad: Number of differing elements.
        max_abs_err: Largest absolute difference.
        tolerance: Allowed absolute difference.
        reproducible: True if a rerun reproduced the same result, False if the
            rerun differed (suspected non-determinism), None if not rerun.
    """

    case_name: str
    shape: SHAPE_DTYPE
    spec: str
    variant: str
    kind: str
    reference: str
    element: tuple[int, int] | None
    expected: int | float | None
    actual: int | float | None
    num_bad: int
    max_abs_err: float
    tolerance: float
    reproducible: bool | None = None

    @property
    def classification(self) -> str:
        if self.reproducible is None:
            return "unclassified"
        return "reproducible" if self.reproducible else "non-deterministic"

    def describe(self) -> str:
        """One-line description with enough context to reproduce the failure."""
        rows, depth, cols = self.shape
        return (
            f"[{self.case_name}] {rows}x{depth}x{cols} {self.variant} vs {self.reference}: "
            f"{self.num_bad} bad, first at {self.element} expected {self.expected} got {self.actual} "
            f"(max err {self.max_abs_err:.3g}, tol {self.tolerance:.3g}, {self.classification}) {self.spec}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "case": self.case_name,
            "shape": list(self.shape),
            "spec": self.spec,
            "variant": self.variant,
            "kind": self.kind,
            "reference": self.reference,
            "element": list(self.element) if self.element is not None else None,
            "expected": self.expected,
            "actual": self.actual,
            "num_bad": self.num_bad,
            "max_abs_err": self.max_abs_err,
            "tolerance": self.tolerance,
            "classification": self.classification,
        }


@dataclass
class VariantResult:
    """Outcome of running one variant.

    Attributes:
        variant: The variant that ran.
        ok: Whether it matched every reference it was compared with.
        max_abs_err: Largest difference from the oracle.
        elapsed_s: Wall time of the multiplication.
        output: Logical output, kept only when requested by the config.
    """

    variant: Variant
    ok: bool
    max_abs_err: float
    elapsed_s: float
    output: np.ndarray | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "variant": self.variant.label,
            "ok": self.ok,
            "max_abs_err": self.max_abs_err,
            "elapsed_s": self.elapsed_s,
        }


@dataclass(frozen=True)
class CaseError:
    """Error that aborted a test case before all of its variants ran.

    Attributes:
        case_name: Name of the aborted test case.
        error_type: Exception class name.
        message: Captured error message with traceback.
        exception: The exception itself.
    """

    case_name: str
    error_type: str
    message: str
    exception: GemmCheckError

    @classmethod
    def from_exception(cls, case_name: str, exception: GemmCheckError) -> CaseError:
        return cls(case_name, type(exception).__name__, capture_error_message(exception), exception)

    def to_dict(self) -> dict[str, Any]:
        return {"case": self.case_name, "error_type": self.error_type, "message": self.message}


@dataclass
class CaseResult:
    """Everything recorded while running one test case."""

    name: str
    shape: SHAPE_DTYPE
    spec: str = ""
    variants: list[VariantResult] = field(default_factory=list)
    mismatches: list[Mismatch] = field(default_factory=list)
    error: CaseError | None = None
    oracle_elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and not self.mismatches

    @property
    def status(self) -> str:
        if self.error is not None:
            return self.error.error_type
        return "ok" if not self.mismatches else "mismatch"

    def output(self, label: str) -> np.ndarray:
        """Kept output of the variant with the given label.

        Raises:
            KeyError: If no variant with that label kept its output.
        """
        for result in self.variants:
            if result.variant.label == label and result.output is not None:
                return result.output
        raise KeyError(f"no kept output for variant {label!r} in case {self.name!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "shape": list(self.shape),
            "spec": self.spec,
            "status": self.status,
            "oracle_elapsed_s": self.oracle_elapsed_s,
            "variants": [v.to_dict() for v in self.variants],
            "mismatches": [m.to_dict() for m in self.mismatches],
            "error": self.error.to_dict() if self.error is not None else None,
        }


class HarnessReport:
    """Results of one or more harness passes.

    Mismatches and case errors are recorded instead of raised so that a run
    reports every failure; raise_for_failures turns them into a test failure.

    Attributes:
        cases: CaseResult per executed test case, in execution order.
    """

    def __init__(self, cases: list[CaseResult] | None = None) -> None:
        self.cases: list[CaseResult] = list(cases) if cases else []

    def add(self, case: CaseResult) -> None:
        self.cases.append(case)

    def extend(self, other: HarnessReport) -> None:
        self.cases.extend(other.cases)

    @property
    def mismatches(self) -> list[Mismatch]:
        return [m for case in self.cases for m in case.mismatches]

    @property
    def errors(self) -> list[CaseError]:
        return [case.error for case in self.cases if case.error is not None]

    @property
    def num_variants(self) -> int:
        return sum(len(case.variants) for case in self.cases)

    @property
    def ok(self) -> bool:
        return all(case.ok for case in self.cases)

    def case(self, name: str) -> CaseResult:
        """Return the result of the case with the given name.

        Raises:
            KeyError: If no case with that name ran.
        """
        for case in self.cases:
            if case.name == name:
                return case
        raise KeyError(f"no case named {name!r} in report")

    def raise_for_failures(self) -> None:
        """Raise if any case failed.

        Raises:
            GemmCheckError: The first case error, if any case was aborted.
            NumericMismatchError: If any mismatch was recorded.
        """
        errors = self.errors
        if errors:
            raise errors[0].exception
        mismatches = self.mismatches
        if mismatches:
            raise NumericMismatchError(mismatches)

    def summary_table(self) -> str:
        from tabulate import tabulate

        headers = ["case", "shape", "variants", "mismatches", "status", "oracle_s"]
        rows = [
            [
                case.name,
                "x".join(str(d) for d in case.shape),
                len(case.variants),
                len(case.mismatches),
                case.status,
                f"{case.oracle_elapsed_s:.4f}",
            ]
            for case in self.cases
        ]
        return tabulate(rows, headers=headers, tablefmt="simple")

    def mismatch_table(self) -> str:
        from tabulate import tabulate

        headers = ["case", "variant", "reference", "element", "expected", "actual", "num_bad", "classification"]
        rows = [
            [m.case_name, m.variant, m.reference, m.element, m.expected, m.actual, m.num_bad, m.classification]
            for m in self.mismatches
        ]
        return tabulate(rows, headers=headers, tablefmt="simple")

    def summary(self) -> None:
        """Print a tabulate-formatted summary of every case and mismatch to stdout."""
        print(self.summary_table())
        if self.mismatches:
            print()
            print(self.mismatch_table())
        for error in self.errors:
            print(f"\n{error.case_name}: {error.message}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "num_cases": len(self.cases),
            "num_variants": self.num_variants,
            "num_mismatches": len(self.mismatches),
            "num_errors": len(self.errors),
            "cases": [case.to_dict() for case in self.cases],
        }

    def dump_json(self, path: str) -> None:
        """Write the report as JSON, creating parent directories as needed."""
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, sort_keys=True, default=str)

    def __len__(self) -> int:
        return len(self.cases)

    def __repr__(self) -> str:
        return (
            f"HarnessReport({len(self.cases)} cases, {self.num_variants} variants, "
            f"{len(self.mismatches)} mismatches, {len(self.errors)} errors)"
        )
