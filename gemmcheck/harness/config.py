# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from gemmcheck.errors import ConfigurationError

ENV_PREFIX = "GEMMCHECK_"


def _cpu_count() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class HarnessConfig:
    """Settings shared by every pass of a DifferentialHarness.

    Attributes:
        thread_counts: Thread counts every variant is run with.
        max_threads: Number of hardware threads; appended to thread_counts
            when include_max_threads is set.
        include_max_threads: Whether to also run with max_threads.
        seed: Seed of the default CaseFactory used by the passes.
        rerun_mismatches: Re-run a mismatching variant once to classify it as
            reproducible or non-deterministic.
        check_cross_variant: Also compare every variant with the first
            variant that matched the oracle.
        keep_outputs: Keep each variant's logical output on its result.
        keep_oracle_results: Keep reference results after a case completes.
        progress: Show a tqdm progress bar per case.
    """

    thread_counts: tuple[int, ...] = (1, 2, 4)
    max_threads: int = field(default_factory=_cpu_count)
    include_max_threads: bool = True
    seed: int = 0
    rerun_mismatches: bool = True
    check_cross_variant: bool = True
    keep_outputs: bool = False
    keep_oracle_results: bool = False
    progress: bool = False

    def __post_init__(self) -> None:
        if not self.thread_counts or any(t < 1 for t in self.thread_counts):
            raise ConfigurationError(f"thread counts must be positive, got {self.thread_counts}", "thread_counts")
        if self.max_threads < 1:
            raise ConfigurationError(f"max_threads must be positive, got {self.max_threads}", "max_threads")

    def resolved_thread_counts(self) -> tuple[int, ...]:
        """Deduplicated thread counts in first-seen order, including max_threads if enabled."""
        counts = list(self.thread_counts)
        if self.include_max_threads:
            counts.append(self.max_threads)
        return tuple(dict.fromkeys(counts))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> "HarnessConfig":
        """Build a config from GEMMCHECK_* environment variables.

        Recognized variables: GEMMCHECK_THREAD_COUNTS (comma separated),
        GEMMCHECK_MAX_THREADS, GEMMCHECK_SEED, GEMMCHECK_PROGRESS (0/1).

        Args:
            environ: Mapping to read from. Defaults to os.environ.
            **overrides: Field values that take precedence over the environment.

        Returns:
            The resulting HarnessConfig.

        Raises:
            ConfigurationError: If a variable cannot be parsed.
        """
        environ = os.environ if environ is None else environ
        values = {}
        try:
            if f"{ENV_PREFIX}THREAD_COUNTS" in environ:
                raw = environ[f"{ENV_PREFIX}THREAD_COUNTS"]
                values["thread_counts"] = tuple(int(t) for t in raw.split(",") if t.strip())
            if f"{ENV_PREFIX}MAX_THREADS" in environ:
                values["max_threads"] = int(environ[f"{ENV_PREFIX}MAX_THREADS"])
            if f"{ENV_PREFIX}SEED" in environ:
                values["seed"] = int(environ[f"{ENV_PREFIX}SEED"])
        except ValueError as e:
            raise ConfigurationError(f"invalid {ENV_PREFIX}* environment value: {e}") from e
        if f"{ENV_PREFIX}PROGRESS" in environ:
            values["progress"] = environ[f"{ENV_PREFIX}PROGRESS"].strip().lower() in ("1", "true", "yes")
        values.update(overrides)
        return cls(**values)

    def with_overrides(self, **overrides) -> "HarnessConfig":
        return replace(self, **overrides)
