# hlpai_sdk/middleware/metrics.py
# SPDX-License-Identifier: Apache-2.0
"""
Metrics interface (SIEM-safe, low-cardinality).

`OperationMiddleware` emits one `observe` per `execute()` call, with
``code`` set to the ErrorKind value of a failure or ``"OK"``, and one
``retries_total`` counter per retry.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol


class MetricsSink(Protocol):
    """
    Metrics collection protocol.

    Implementations MUST:
        - Avoid PII.
        - Avoid high-cardinality labels.
        - Never receive API keys or key identifiers.
    """

    def observe(
        self,
        *,
        component: str,
        op: str,
        ms: float,
        ok: bool,
        code: str = "OK",
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None: ...

    def counter(
        self,
        *,
        component: str,
        name: str,
        value: int = 1,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None: ...


class NoopMetrics:
    """No-op metrics sink for tests or minimal deployments."""

    def observe(self, **_: Any) -> None: ...

    def counter(self, **_: Any) -> None: ...


__all__ = ["MetricsSink", "NoopMetrics"]
