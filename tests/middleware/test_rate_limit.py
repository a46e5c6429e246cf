# SPDX-License-Identifier: Apache-2.0
"""
Middleware — Sliding-window rate limiter.

Covers:
  • K admissions per window; the (K+1)-th is rejected
  • Rejections record nothing (idempotent)
  • Expired entries are purged before every decision
  • Keys are independent; disabled limiter always admits and keeps no state
  • Purge → check → append is atomic across threads sharing a key
"""

import threading

import pytest

from hlpai_sdk.middleware.rate_limit import SlidingWindowRateLimiter

KEY = "Ollama:Generate"


def _limiter(clock, max_requests=3, window_s=60.0, **kw):
    return SlidingWindowRateLimiter(max_requests=max_requests, window_s=window_s, clock=clock, **kw)


def test_kth_request_admitted_and_next_rejected(clock):
    limiter = _limiter(clock, max_requests=3)
    assert [limiter.try_acquire(KEY) for _ in range(3)] == [True, True, True]
    assert limiter.try_acquire(KEY) is False, "4th request inside the window must be rejected"


def test_rejections_do_not_consume_window_slots(clock):
    limiter = _limiter(clock, max_requests=1)
    assert limiter.try_acquire(KEY) is True
    clock.advance(30)
    assert limiter.try_acquire(KEY) is False
    clock.advance(31)
    # Only the admission at t=0 counted; it has now aged out.
    assert limiter.try_acquire(KEY) is True, "a rejected request must not extend the window"


def test_window_slides_as_entries_expire(clock):
    limiter = _limiter(clock, max_requests=2, window_s=10.0)
    assert limiter.try_acquire(KEY)
    clock.advance(5)
    assert limiter.try_acquire(KEY)
    assert not limiter.try_acquire(KEY)
    clock.advance(5.5)
    assert limiter.try_acquire(KEY), "the first admission is older than the window"
    assert not limiter.try_acquire(KEY)


def test_keys_are_independent(clock):
    limiter = _limiter(clock, max_requests=1)
    assert limiter.try_acquire("Ollama:Generate")
    assert limiter.try_acquire("Ollama:GetModels")
    assert limiter.try_acquire("OpenAI:Generate")
    assert not limiter.try_acquire("Ollama:Generate")
    assert limiter.active_key_count() == 3


def test_disabled_limiter_always_admits_and_keeps_no_state(clock):
    limiter = _limiter(clock, max_requests=0, enabled=False)
    assert all(limiter.try_acquire(KEY) for _ in range(100))
    assert limiter.active_key_count() == 0
    assert limiter.enabled is False


def test_zero_budget_rejects_everything(clock):
    limiter = _limiter(clock, max_requests=0)
    assert limiter.try_acquire(KEY) is False


def test_clear_resets_state(clock):
    limiter = _limiter(clock, max_requests=1)
    limiter.try_acquire(KEY)
    limiter.clear()
    assert limiter.active_key_count() == 0
    assert limiter.try_acquire(KEY) is True


@pytest.mark.parametrize("kwargs", [{"max_requests": -1, "window_s": 60}, {"max_requests": 1, "window_s": 0}])
def test_invalid_construction(kwargs):
    with pytest.raises(ValueError):
        SlidingWindowRateLimiter(**kwargs)


def test_concurrent_admissions_never_exceed_budget():
    limiter = SlidingWindowRateLimiter(max_requests=50, window_s=3600.0)
    admitted = []
    lock = threading.Lock()
    start = threading.Barrier(8)

    def worker():
        start.wait()
        mine = sum(1 for _ in range(25) if limiter.try_acquire(KEY))
        with lock:
            admitted.append(mine)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(admitted) == 50, f"exactly the budget must be admitted, got {sum(admitted)}"
