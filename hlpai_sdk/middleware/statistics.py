# hlpai_sdk/middleware/statistics.py
# SPDX-License-Identifier: Apache-2.0
"""In-process retry counters and the statistics snapshot exposed by the middleware."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional


@dataclass(frozen=True)
class OperationStatistics:
    """Point-in-time snapshot; `retry_count_by_operation` is a copy, never a live view."""

    total_retries: int = 0
    operations_with_retries: int = 0
    active_rate_limit_keys: int = 0
    retry_count_by_operation: Mapping[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "total_retries": self.total_retries,
            "operations_with_retries": self.operations_with_retries,
            "active_rate_limit_keys": self.active_rate_limit_keys,
            "retry_count_by_operation": dict(self.retry_count_by_operation),
        }


class RetryCounters:
    """
    Monotonic per-key retry counts.

    Counts only grow until `clear()`. All access is serialized by `lock`,
    which the middleware shares with its rate limiter.
    """

    def __init__(self, *, lock: Optional[threading.RLock] = None) -> None:
        self._lock = lock if lock is not None else threading.RLock()
        self._counts: Dict[str, int] = {}

    def increment(self, key: str) -> int:
        with self._lock:
            value = self._counts.get(key, 0) + 1
            self._counts[key] = value
            return value

    def get(self, key: str) -> int:
        with self._lock:
            return self._counts.get(key, 0)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def clear(self) -> None:
        with self._lock:
            self._counts.clear()


__all__ = [
    "OperationStatistics",
    "RetryCounters",
]
