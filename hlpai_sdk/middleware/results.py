# hlpai_sdk/middleware/results.py
# SPDX-License-Identifier: Apache-2.0
"""
Result envelope returned by `OperationMiddleware.execute()`.

Callers never see raw exceptions from execute(); they get an OperationResult
that holds either the operation's data or a classified AiOperationError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Generic, Optional, TypeVar

from hlpai_sdk.core.errors import AiOperationError

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """
    Outcome of a single execute() call.

    Exactly one of `data` / `error` is meaningful: successful results carry no
    error, failed results carry no data. Use `success()` / `failure()` rather
    than the constructor.
    """

    is_success: bool
    operation_name: str
    provider_name: str
    duration: timedelta
    data: Optional[T] = None
    error: Optional[AiOperationError] = None
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.is_success and self.error is not None:
            raise ValueError("successful result cannot carry an error")
        if not self.is_success and self.error is None:
            raise ValueError("failed result requires an error")
        if not self.is_success and self.data is not None:
            raise ValueError("failed result cannot carry data")

    @classmethod
    def success(
        cls,
        data: T,
        *,
        operation_name: str,
        provider_name: str,
        duration: timedelta,
    ) -> "OperationResult[T]":
        return cls(
            is_success=True,
            data=data,
            operation_name=operation_name,
            provider_name=provider_name,
            duration=duration,
        )

    @classmethod
    def failure(
        cls,
        error: AiOperationError,
        *,
        operation_name: str,
        provider_name: str,
        duration: timedelta,
    ) -> "OperationResult[T]":
        return cls(
            is_success=False,
            error=error,
            operation_name=operation_name,
            provider_name=provider_name,
            duration=duration,
        )

    @property
    def duration_ms(self) -> float:
        return self.duration.total_seconds() * 1000.0

    @property
    def code(self) -> str:
        return "OK" if self.is_success else self.error.kind.value

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe envelope; `data` is included as-is and must be JSON-safe itself."""
        out: Dict[str, Any] = {
            "ok": self.is_success,
            "code": self.code,
            "operation": self.operation_name,
            "provider": self.provider_name,
            "ms": round(self.duration_ms, 3),
            "timestamp": self.timestamp.isoformat(),
        }
        if self.is_success:
            out["result"] = self.data
        else:
            out["error"] = self.error.to_dict()
        return out


__all__ = ["OperationResult"]
