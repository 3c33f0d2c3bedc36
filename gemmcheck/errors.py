# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Exception hierarchy for gemmcheck.

    GemmCheckError (base)
    ├── ConfigurationError (invalid spec, descriptor or policy violation)
    ├── NumericMismatchError (recorded mismatches promoted to a test failure)
    └── InfrastructureError (allocation failure, aliasing, multiply crashed)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gemmcheck.harness.results import Mismatch


class GemmCheckError(Exception):
    """Base exception for all gemmcheck errors."""


class ConfigurationError(GemmCheckError):
    """Invalid MultiplicationSpec, layout or operand binding.

    Detected at construction time. Fatal only to the affected test case.

    Attributes:
        field: Name of the offending field, if known.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class NumericMismatchError(GemmCheckError):
    """One or more variants disagreed with the oracle beyond tolerance.

    Attributes:
        mismatches: The recorded mismatches, in execution order.
    """

    def __init__(self, mismatches: list[Mismatch]) -> None:
        self.mismatches = mismatches
        lines = [f"{len(mismatches)} numeric mismatch(es):"]
        lines.extend(f"  {m.describe()}" for m in mismatches[:20])
        if len(mismatches) > 20:
            lines.append(f"  ...({len(mismatches) - 20} more)...")
        super().__init__("\n".join(lines))


class InfrastructureError(GemmCheckError):
    """Failure outside the numeric comparison that aborts the current test case.

    Attributes:
        case_name: Name of the test case being executed, if known.
    """

    def __init__(self, message: str, case_name: str | None = None) -> None:
        self.case_name = case_name
        super().__init__(message)
