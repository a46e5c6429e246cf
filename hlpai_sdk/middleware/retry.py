# hlpai_sdk/middleware/retry.py
# SPDX-License-Identifier: Apache-2.0
"""
Bounded async retry with exponential backoff and jitter.

Attempt 1 runs immediately. Attempt ``k > 1`` first sleeps::

    backoff = min(base_ms * 2 ** (k - 2), max_ms)
    sleep   = backoff + backoff * U(0, jitter_ratio)

Every failure goes through the supplied classifier. A failure is retried only
when it is retryable and attempts remain; otherwise the classified error is
raised. There is no separate "retries exhausted" error: the last attempt's own
classified error is what the caller sees.

Randomization (jitter) can be toggled off for deterministic testing.

Usage:
    policy = RetryPolicy(max_retries=3, base_delay_ms=200, max_delay_ms=5_000)
    result = await retry_async(
        lambda: provider.generate("hi"),
        policy=policy,
        classify=lambda exc: classify_exception(exc, operation_name="Generate",
                                                provider_name="Ollama"),
    )
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from hlpai_sdk.core.errors import AiOperationError

LOG = logging.getLogger(__name__)

T = TypeVar("T")

Classifier = Callable[[BaseException], AiOperationError]
OnRetry = Callable[[int, float, AiOperationError], None]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration with exponential backoff.

    Attributes:
        max_retries:   Retries after the first attempt (total attempts = max_retries + 1).
        base_delay_ms: Backoff before the first retry.
        max_delay_ms:  Backoff cap; jitter is added on top of the capped value.
        jitter_ratio:  Upper bound of the random fraction added to each backoff.
        use_jitter:    Disable for deterministic sleeps.
    """

    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30_000
    jitter_ratio: float = 0.1
    use_jitter: bool = True

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("Backoff times must be >= 0")
        if not 0.0 <= self.jitter_ratio <= 1.0:
            raise ValueError("jitter_ratio must be within [0, 1]")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def backoff_ms(self, attempt: int) -> int:
        """Backoff (without jitter) slept before `attempt`; 0 for the first attempt."""
        if attempt <= 1:
            return 0
        raw = self.base_delay_ms * (2 ** (attempt - 2))
        return min(raw, self.max_delay_ms)

    def delay_ms(self, attempt: int) -> float:
        """Backoff plus jitter for `attempt`."""
        backoff = self.backoff_ms(attempt)
        if not self.use_jitter or backoff == 0:
            return float(backoff)
        return backoff + backoff * random.uniform(0.0, self.jitter_ratio)


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    classify: Classifier,
    on_retry: Optional[OnRetry] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Execute an async operation with retries on retryable errors.

    Args:
        fn:       Zero-arg coroutine factory invoked once per attempt.
        policy:   RetryPolicy controlling the attempt bound and backoff.
        classify: Maps any raised exception to an AiOperationError.
        on_retry: Optional callback (next_attempt, sleep_seconds, error) run
                  before each backoff sleep. Exceptions from it are logged and
                  ignored.
        sleep:    Awaitable sleep; injectable for tests.

    Returns:
        The result of `fn()` once an attempt succeeds.

    Raises:
        AiOperationError: the classified error of the first non-retryable
            failure, or of the final attempt.
        asyncio.CancelledError: when the task running the retry loop is itself
            being cancelled.
    """
    attempt = 1
    while True:
        try:
            return await fn()
        except asyncio.CancelledError as exc:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            error = classify(exc)
            cause = exc
        except Exception as exc:
            error = classify(exc)
            cause = exc

        if not error.retryable or attempt > policy.max_retries:
            if error is cause:
                raise error
            raise error from cause

        attempt += 1
        sleep_for = policy.delay_ms(attempt) / 1000.0

        if on_retry is not None:
            try:
                on_retry(attempt, sleep_for, error)
            except Exception:
                LOG.debug("retry callback failed", exc_info=True)

        await sleep(sleep_for)


__all__ = [
    "RetryPolicy",
    "retry_async",
]
