# hlpai_sdk/middleware/middleware.py
# SPDX-License-Identifier: Apache-2.0
"""
Operation execution middleware.

`OperationMiddleware.execute()` is the single entry point through which AI
provider calls are made. For every call it runs, in order:

    1. validation        -> Failure(ValidationError), operation never invoked
    2. rate-limit check  -> Failure(RateLimitExceeded), operation never invoked
    3. retry engine      -> bounded attempts with exponential backoff + jitter
    4. audit             -> one pass/fail event for executed operations
    5. result            -> OperationResult with the elapsed duration

execute() never raises for operation failures; every error is classified and
returned inside the OperationResult. Cancellation of the task that awaits
execute() is the one exception: it propagates unchanged.

Concurrency:
    Rate-limit state and retry counters are shared by every concurrent call on
    one instance and guarded by a single re-entrant lock. Critical sections
    never await, so the same instance is safe to use from several event loops
    in different threads.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from datetime import timedelta
from typing import Awaitable, Callable, List, Optional, TypeVar, Union

from hlpai_sdk.core.errors import AiOperationError, ErrorKind
from hlpai_sdk.core.types import ProviderType
from hlpai_sdk.middleware.audit import AuditSink, NoopAuditSink
from hlpai_sdk.middleware.classifier import classify_exception
from hlpai_sdk.middleware.context import OperationConfiguration, OperationContext
from hlpai_sdk.middleware.metrics import MetricsSink, NoopMetrics
from hlpai_sdk.middleware.rate_limit import SlidingWindowRateLimiter
from hlpai_sdk.middleware.results import OperationResult
from hlpai_sdk.middleware.retry import RetryPolicy, retry_async
from hlpai_sdk.middleware.statistics import OperationStatistics, RetryCounters

LOG = logging.getLogger(__name__)

T = TypeVar("T")

_COMPONENT = "middleware"


def operation_key(provider_name: str, operation_name: str) -> str:
    """Key scoping rate-limit and retry-counter state."""
    return f"{provider_name}:{operation_name}"


class OperationMiddleware:
    """
    Resilience wrapper around AI provider operations.

    Args:
        config:      Tunables; defaults to OperationConfiguration().
        audit_sink:  Receives one event per executed operation. Failures in
                     the sink are logged and never affect the result.
        metrics:     MetricsSink for latency/outcome observations.
        clock:       Monotonic clock in seconds; injectable for tests.
        sleep:       Awaitable sleep used for retry backoff; injectable for tests.
    """

    def __init__(
        self,
        config: Optional[OperationConfiguration] = None,
        *,
        audit_sink: Optional[AuditSink] = None,
        metrics: Optional[MetricsSink] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        self._config = config or OperationConfiguration()
        self._audit = audit_sink or NoopAuditSink()
        self._metrics = metrics or NoopMetrics()
        self._clock = clock
        self._sleep = sleep or asyncio.sleep

        # One lock over both maps.
        self._lock = threading.RLock()
        self._rate_limiter = SlidingWindowRateLimiter(
            max_requests=self._config.max_requests_per_window,
            window_s=self._config.rate_limit_window_s,
            enabled=self._config.enable_rate_limiting,
            lock=self._lock,
            clock=clock,
        )
        self._retry_counters = RetryCounters(lock=self._lock)
        self._policy = RetryPolicy(
            max_retries=self._config.max_retries,
            base_delay_ms=self._config.base_retry_delay_ms,
            max_delay_ms=self._config.max_retry_delay_ms,
        )

    @property
    def config(self) -> OperationConfiguration:
        return self._config

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_name: str,
        provider_type: Union[ProviderType, str],
        context: Optional[OperationContext] = None,
    ) -> OperationResult[T]:
        """
        Run `operation` with validation, rate limiting, retries and auditing.

        Args:
            operation:      Zero-arg coroutine factory; invoked once per attempt.
            operation_name: Logical name, e.g. "Generate".
            provider_type:  ProviderType member (or its value).
            context:        Optional per-call metadata.

        Returns:
            OperationResult holding the data or the classified error.
        """
        t0 = self._clock()
        op_id = uuid.uuid4().hex[:8]
        provider = _coerce_provider(provider_type)
        provider_name = provider.value if provider is not None else str(provider_type)

        errors = self._validate(operation, operation_name, provider, context)
        if errors:
            error = AiOperationError(
                f"Validation failed: {', '.join(errors)}",
                kind=ErrorKind.VALIDATION_ERROR,
            )
            LOG.warning(
                "[%s] rejected %s on %s: %s", op_id, operation_name, provider_name, error.message
            )
            return self._finish(error, None, operation_name, provider_name, t0)

        key = operation_key(provider_name, operation_name)

        if not self._rate_limiter.try_acquire(key):
            error = AiOperationError(
                f"Rate limit exceeded for {operation_name} on {provider_name}",
                kind=ErrorKind.RATE_LIMIT_EXCEEDED,
                retryable=True,
                details={
                    "max_requests_per_window": self._config.max_requests_per_window,
                    "window_minutes": self._config.rate_limit_window_minutes,
                },
            )
            LOG.warning("[%s] rate limit exceeded for %s", op_id, key)
            return self._finish(error, None, operation_name, provider_name, t0)

        LOG.info("[%s] starting %s on %s", op_id, operation_name, provider_name)

        def _classify(exc: BaseException) -> AiOperationError:
            return classify_exception(
                exc, operation_name=operation_name, provider_name=provider_name
            )

        def _on_retry(attempt: int, sleep_s: float, err: AiOperationError) -> None:
            self._retry_counters.increment(key)
            self._count_retry(operation_name, provider_name)
            LOG.warning(
                "[%s] %s on %s failed (%s); attempt %d/%d in %.0fms",
                op_id,
                operation_name,
                provider_name,
                err.kind.value,
                attempt,
                self._policy.max_attempts,
                sleep_s * 1000.0,
            )

        api_key_id = context.api_key_id if context is not None else None
        try:
            data = await retry_async(
                operation,
                policy=self._policy,
                classify=_classify,
                on_retry=_on_retry,
                sleep=self._sleep,
            )
        except Exception as exc:
            error = _classify(exc)
            LOG.error(
                "[%s] %s on %s failed: %s",
                op_id,
                operation_name,
                provider_name,
                error,
                exc_info=error,
            )
            self._emit_audit(provider_name, operation_name, False, api_key_id)
            return self._finish(error, None, operation_name, provider_name, t0)

        result = self._finish(None, data, operation_name, provider_name, t0)
        LOG.info(
            "[%s] %s on %s succeeded in %.0fms",
            op_id,
            operation_name,
            provider_name,
            result.duration_ms,
        )
        self._emit_audit(provider_name, operation_name, True, api_key_id)
        return result

    # ------------------------------------------------------------------ #
    # Statistics
    # ------------------------------------------------------------------ #

    def get_statistics(self) -> OperationStatistics:
        """Consistent snapshot of retry and rate-limit state."""
        with self._lock:
            counts = self._retry_counters.snapshot()
            active_keys = self._rate_limiter.active_key_count()
        return OperationStatistics(
            total_retries=sum(counts.values()),
            operations_with_retries=sum(1 for v in counts.values() if v > 0),
            active_rate_limit_keys=active_keys,
            retry_count_by_operation=counts,
        )

    def clear_statistics(self) -> None:
        """Empty rate-limit state and retry counters atomically."""
        with self._lock:
            self._rate_limiter.clear()
            self._retry_counters.clear()
        LOG.info("operation statistics cleared")

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _validate(
        self,
        operation: object,
        operation_name: str,
        provider: Optional[ProviderType],
        context: Optional[OperationContext],
    ) -> List[str]:
        errors: List[str] = []
        if not callable(operation):
            errors.append("Operation must be callable")
        if not isinstance(operation_name, str) or not operation_name.strip():
            errors.append("Operation name cannot be empty")
        if provider is None:
            errors.append("Invalid provider type")
        if context is not None:
            if context.max_tokens <= 0:
                errors.append("MaxTokens must be greater than 0")
            if context.timeout_ms <= 0:
                errors.append("TimeoutMs must be greater than 0")
            if context.prompt is not None and len(context.prompt) > self._config.max_prompt_length:
                errors.append(
                    f"Prompt length exceeds maximum of {self._config.max_prompt_length} characters"
                )
        return errors

    def _finish(
        self,
        error: Optional[AiOperationError],
        data: object,
        operation_name: str,
        provider_name: str,
        t0: float,
    ) -> OperationResult:
        ms = (self._clock() - t0) * 1000.0
        duration = timedelta(milliseconds=max(ms, 0.0))
        if error is None:
            result = OperationResult.success(
                data,
                operation_name=operation_name,
                provider_name=provider_name,
                duration=duration,
            )
        else:
            result = OperationResult.failure(
                error,
                operation_name=operation_name,
                provider_name=provider_name,
                duration=duration,
            )
        self._record(operation_name, provider_name, ms, result.code)
        return result

    def _emit_audit(
        self,
        provider_name: str,
        operation_name: str,
        success: bool,
        api_key_id: Optional[str],
    ) -> None:
        try:
            self._audit.log_api_key_usage(provider_name, operation_name, success, api_key_id)
        except Exception:
            LOG.warning(
                "audit sink failed for %s.%s", provider_name, operation_name, exc_info=True
            )

    def _record(self, operation_name: str, provider_name: str, ms: float, code: str) -> None:
        """
        Emit a timing metric for an execute() call.

        Any failures in metrics emission are swallowed.
        """
        try:
            self._metrics.observe(
                component=_COMPONENT,
                op=operation_name,
                ms=ms,
                ok=code == "OK",
                code=code,
                extra={"provider": provider_name},
            )
        except Exception:
            pass

    def _count_retry(self, operation_name: str, provider_name: str) -> None:
        try:
            self._metrics.counter(
                component=_COMPONENT,
                name="retries_total",
                extra={"op": operation_name, "provider": provider_name},
            )
        except Exception:
            pass


def _coerce_provider(value: object) -> Optional[ProviderType]:
    if isinstance(value, ProviderType):
        return value
    try:
        return ProviderType(value)
    except (TypeError, ValueError):
        return None


__all__ = [
    "OperationMiddleware",
    "operation_key",
]
