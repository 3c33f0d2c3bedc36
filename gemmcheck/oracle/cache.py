# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from collections.abc import Callable, Hashable

from gemmcheck.oracle.reference import OracleResult

logger = logging.getLogger(__name__)


class OracleCache:
    """Lazily computed reference results, one per logical multiplication.

    Results are read-only once stored, so they can be shared by every
    structural variant of the same multiplication without locking.
    """

    def __init__(self) -> None:
        self._results: dict[Hashable, OracleResult] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable, compute: Callable[[], OracleResult]) -> OracleResult:
        """Return the cached result for key, computing it on first use.

        Args:
            key: Identity of the logical multiplication.
            compute: Zero-argument callable producing the result.

        Returns:
            The cached OracleResult.
        """
        if key in self._results:
            self.hits += 1
            return self._results[key]
        self.misses += 1
        result = compute()
        self._results[key] = result
        logger.debug("oracle cache miss for %s (%.3fs)", key, result.elapsed_s)
        return result

    def discard(self, key: Hashable) -> None:
        """Release the result held for key, if any."""
        self._results.pop(key, None)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._results

    def __len__(self) -> int:
        return len(self._results)
