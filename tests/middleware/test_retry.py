# SPDX-License-Identifier: Apache-2.0
"""
Middleware — Retry engine and backoff policy.

Covers:
  • Backoff doubles per attempt, is non-decreasing and capped (jitter excluded)
  • Jitter stays within 0–10% of the capped backoff
  • Attempt bound: max_retries + 1 invocations for persistently retryable failures
  • The final retryable failure surfaces as its own classified error
  • Non-retryable failures stop immediately
  • Cancelling the task running the loop propagates CancelledError
"""

import asyncio

import pytest

from hlpai_sdk.core.errors import AiOperationError, ErrorKind
from hlpai_sdk.middleware.classifier import classify_exception
from hlpai_sdk.middleware.retry import RetryPolicy, retry_async


def _classify(exc):
    return classify_exception(exc, operation_name="Generate", provider_name="Ollama")


# ---------------------------------------------------------------------------
# RetryPolicy
# ---------------------------------------------------------------------------

def test_first_attempt_has_no_backoff():
    assert RetryPolicy().backoff_ms(1) == 0
    assert RetryPolicy().delay_ms(1) == 0.0


def test_backoff_doubles_from_base():
    policy = RetryPolicy(max_retries=3, base_delay_ms=100, max_delay_ms=30_000)
    assert [policy.backoff_ms(k) for k in (2, 3, 4)] == [100, 200, 400]


@pytest.mark.parametrize(
    "base,cap,retries",
    [(1000, 30_000, 3), (100, 250, 6), (1, 1, 5), (0, 0, 2), (700, 5_000, 10)],
)
def test_backoff_is_monotonic_and_capped(base, cap, retries):
    policy = RetryPolicy(max_retries=retries, base_delay_ms=base, max_delay_ms=cap)
    delays = [policy.backoff_ms(k) for k in range(2, retries + 2)]
    assert delays == sorted(delays), f"backoff must be non-decreasing: {delays}"
    assert all(d <= cap for d in delays), f"backoff must never exceed {cap}: {delays}"


def test_jitter_is_bounded():
    policy = RetryPolicy(max_retries=3, base_delay_ms=1000, max_delay_ms=30_000)
    for _ in range(200):
        d = policy.delay_ms(2)
        assert 1000.0 <= d <= 1100.0, f"jittered delay out of range: {d}"


def test_base_above_cap_is_clamped_to_cap():
    policy = RetryPolicy(max_retries=3, base_delay_ms=5_000, max_delay_ms=1_000, use_jitter=False)
    assert [policy.backoff_ms(k) for k in (2, 3, 4)] == [1_000, 1_000, 1_000]


def test_jitter_can_be_disabled():
    policy = RetryPolicy(base_delay_ms=250, max_delay_ms=1000, use_jitter=False)
    assert policy.delay_ms(3) == 500.0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_retries": -1},
        {"base_delay_ms": -1},
        {"jitter_ratio": 1.5},
    ],
)
def test_policy_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)


# ---------------------------------------------------------------------------
# retry_async
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_succeeds_after_transient_failures(scripted, sleeps):
    op = scripted([ConnectionResetError(), ConnectionResetError(), "ok"])
    seen = []
    policy = RetryPolicy(max_retries=3, base_delay_ms=100, max_delay_ms=1000, use_jitter=False)

    result = await retry_async(
        op,
        policy=policy,
        classify=_classify,
        on_retry=lambda attempt, s, err: seen.append((attempt, s, err.kind)),
        sleep=sleeps,
    )

    assert result == "ok"
    assert op.calls == 3
    assert sleeps.calls == [0.1, 0.2], "backoff 100ms then 200ms"
    assert seen == [
        (2, 0.1, ErrorKind.NETWORK_ERROR),
        (3, 0.2, ErrorKind.NETWORK_ERROR),
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("max_retries", [0, 1, 2, 5])
async def test_attempts_are_bounded(scripted, sleeps, max_retries):
    op = scripted([ConnectionResetError("reset")])
    policy = RetryPolicy(max_retries=max_retries, base_delay_ms=1, max_delay_ms=4)

    with pytest.raises(AiOperationError):
        await retry_async(op, policy=policy, classify=_classify, sleep=sleeps)

    assert op.calls == max_retries + 1, "exactly max_retries + 1 invocations"
    assert len(sleeps.calls) == max_retries


@pytest.mark.asyncio
async def test_last_retryable_failure_is_raised_as_classified_error(scripted, sleeps):
    last = ConnectionResetError("final reset")
    op = scripted([ConnectionResetError("first"), last])
    policy = RetryPolicy(max_retries=1, base_delay_ms=1, max_delay_ms=1)

    with pytest.raises(AiOperationError) as excinfo:
        await retry_async(op, policy=policy, classify=_classify, sleep=sleeps)

    err = excinfo.value
    assert err.kind is ErrorKind.NETWORK_ERROR, "kind comes from classifying the last failure"
    assert err.retryable is True, "the transient nature of the failure is preserved"
    assert err.cause is last, "the last raw exception is the cause"
    assert "final reset" in err.message
    assert "exhaust" not in err.message.lower(), "no generic exhausted-retries message"


@pytest.mark.asyncio
async def test_non_retryable_failure_stops_immediately(scripted, sleeps):
    op = scripted([PermissionError("denied"), "never"])
    policy = RetryPolicy(max_retries=5, base_delay_ms=1, max_delay_ms=1)

    with pytest.raises(AiOperationError) as excinfo:
        await retry_async(op, policy=policy, classify=_classify, sleep=sleeps)

    assert op.calls == 1
    assert sleeps.calls == []
    assert excinfo.value.kind is ErrorKind.AUTHENTICATION_ERROR


@pytest.mark.asyncio
async def test_carried_error_is_raised_as_is(scripted, sleeps):
    carried = AiOperationError("no quota", kind=ErrorKind.INSUFFICIENT_QUOTA)
    op = scripted([carried])

    with pytest.raises(AiOperationError) as excinfo:
        await retry_async(op, policy=RetryPolicy(max_retries=3), classify=_classify, sleep=sleeps)

    assert excinfo.value is carried
    assert op.calls == 1


@pytest.mark.asyncio
async def test_failing_retry_callback_does_not_break_loop(scripted, sleeps):
    op = scripted([ConnectionResetError(), "ok"])

    def boom(*_):
        raise RuntimeError("callback failure")

    result = await retry_async(
        op,
        policy=RetryPolicy(max_retries=1, base_delay_ms=1, max_delay_ms=1),
        classify=_classify,
        on_retry=boom,
        sleep=sleeps,
    )
    assert result == "ok"


@pytest.mark.asyncio
async def test_operation_raised_cancellation_is_retried_as_timeout(scripted, sleeps):
    op = scripted([asyncio.CancelledError(), "ok"])
    result = await retry_async(
        op,
        policy=RetryPolicy(max_retries=1, base_delay_ms=1, max_delay_ms=1),
        classify=_classify,
        sleep=sleeps,
    )
    assert result == "ok"
    assert op.calls == 2


@pytest.mark.asyncio
async def test_cancelling_the_caller_task_propagates():
    started = asyncio.Event()

    async def slow():
        started.set()
        await asyncio.sleep(10)

    task = asyncio.create_task(
        retry_async(slow, policy=RetryPolicy(max_retries=3), classify=_classify)
    )
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
