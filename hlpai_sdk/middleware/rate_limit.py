# hlpai_sdk/middleware/rate_limit.py
# SPDX-License-Identifier: Apache-2.0
"""
Per-key sliding-window admission control; per-process only.

Notes:
    - Keys are operation keys (``"provider:operation"``).
    - Rejections never record a timestamp, so repeated rejects are idempotent.
    - Purge, count and append run under one lock; the lock may be shared with
      other in-process counters (see OperationMiddleware).
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional


class SlidingWindowRateLimiter:
    def __init__(
        self,
        *,
        max_requests: int,
        window_s: float,
        enabled: bool = True,
        lock: Optional[threading.RLock] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 0:
            raise ValueError("max_requests must be >= 0")
        if window_s <= 0:
            raise ValueError("window_s must be > 0")
        self._max_requests = int(max_requests)
        self._window_s = float(window_s)
        self._enabled = bool(enabled)
        self._lock = lock if lock is not None else threading.RLock()
        self._clock = clock
        self._admitted: Dict[str, Deque[float]] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    def try_acquire(self, key: str) -> bool:
        """
        Admit one request for `key` if the window still has room.

        Returns True and records the admission, or False with state unchanged
        apart from purging expired entries.
        """
        if not self._enabled:
            return True

        with self._lock:
            now = self._clock()
            window_start = now - self._window_s
            stamps = self._admitted.get(key)
            if stamps is None:
                stamps = deque()
                self._admitted[key] = stamps
            while stamps and stamps[0] < window_start:
                stamps.popleft()
            if len(stamps) >= self._max_requests:
                return False
            stamps.append(now)
            return True

    def active_key_count(self) -> int:
        with self._lock:
            return len(self._admitted)

    def clear(self) -> None:
        with self._lock:
            self._admitted.clear()


__all__ = ["SlidingWindowRateLimiter"]
