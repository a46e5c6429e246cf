# SPDX-License-Identifier: Apache-2.0
"""
Shared fixtures for the middleware and provider tests.

Everything here is in-process: a controllable clock, a sleep recorder that
never actually waits, recording audit/metrics sinks, and a scripted
operation whose outcome per call is given up front.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pytest

from hlpai_sdk.middleware.context import OperationConfiguration
from hlpai_sdk.middleware.middleware import OperationMiddleware


class FakeClock:
    """Monotonic clock advanced manually (seconds)."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class RecordingAudit:
    def __init__(self) -> None:
        self.events: List[Dict[str, Any]] = []

    def log_api_key_usage(
        self,
        provider_name: str,
        operation_name: str,
        success: bool,
        api_key_id: Optional[str] = None,
    ) -> None:
        self.events.append(
            {
                "provider": provider_name,
                "operation": operation_name,
                "success": success,
                "api_key_id": api_key_id,
            }
        )


class RecordingMetrics:
    def __init__(self) -> None:
        self.observations: List[Dict[str, Any]] = []
        self.counters: List[Dict[str, Any]] = []

    def observe(self, **kwargs: Any) -> None:
        self.observations.append(kwargs)

    def counter(self, **kwargs: Any) -> None:
        self.counters.append(kwargs)


class ScriptedOperation:
    """
    Zero-arg coroutine factory replaying a script of outcomes.

    Exceptions (instances) in the script are raised; any other value is
    returned. The last entry repeats once the script is exhausted.
    """

    def __init__(self, script: Sequence[Any]) -> None:
        if not script:
            raise ValueError("script must not be empty")
        self._script = list(script)
        self.calls = 0

    async def __call__(self) -> Any:
        idx = min(self.calls, len(self._script) - 1)
        self.calls += 1
        outcome = self._script[idx]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def audit() -> RecordingAudit:
    return RecordingAudit()


@pytest.fixture
def metrics() -> RecordingMetrics:
    return RecordingMetrics()


@pytest.fixture
def scripted():
    """Factory fixture: scripted(["ok"]) / scripted([ConnectionResetError(), "ok"])."""
    return ScriptedOperation


@pytest.fixture
def make_middleware(clock, sleeps, audit, metrics):
    """Build an OperationMiddleware wired to the recording fixtures."""

    def _make(**overrides: Any) -> OperationMiddleware:
        config = OperationConfiguration(**overrides)
        return OperationMiddleware(
            config,
            audit_sink=audit,
            metrics=metrics,
            clock=clock,
            sleep=sleeps,
        )

    return _make
