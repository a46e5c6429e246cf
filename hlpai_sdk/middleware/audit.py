# hlpai_sdk/middleware/audit.py
# SPDX-License-Identifier: Apache-2.0
"""
Audit sinks for API key usage.

The middleware emits exactly one `log_api_key_usage` call for every operation
it actually executed (success or terminal failure). Sinks MUST NOT receive or
store raw secrets; `api_key_id` is an opaque reference, and `SecurityAuditLog`
only keeps a short hash of it.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Protocol

LOG = logging.getLogger(__name__)

API_KEY_USAGE_EVENT = "ApiKeyUsage"


class AuditSink(Protocol):
    """Fire-and-forget receiver of pass/fail events."""

    def log_api_key_usage(
        self,
        provider_name: str,
        operation_name: str,
        success: bool,
        api_key_id: Optional[str] = None,
    ) -> None: ...


class NoopAuditSink:
    """Audit sink for tests or deployments that do not audit."""

    def log_api_key_usage(self, *_: Any, **__: Any) -> None: ...


class AuditSeverity(str, Enum):
    LOW = "Low"
    STANDARD = "Standard"


@dataclass(frozen=True)
class AuditEvent:
    id: str
    timestamp: datetime
    event_type: str
    message: str
    provider: str
    operation: str
    success: bool
    key_hash: Optional[str]
    severity: AuditSeverity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type,
            "message": self.message,
            "provider": self.provider,
            "operation": self.operation,
            "success": self.success,
            "key_hash": self.key_hash,
            "severity": self.severity.value,
        }


def hash_key_id(key_id: Optional[str]) -> Optional[str]:
    """
    Hash an API key reference for logs and audit records.

    Raw identifiers MUST NEVER be emitted.
    """
    if not key_id:
        return None
    return hashlib.sha256(key_id.encode()).hexdigest()[:12]


class SecurityAuditLog:
    """
    In-memory audit sink with a bounded event buffer.

    Successful usage is logged at INFO with LOW severity; failures at WARNING
    with STANDARD severity. The oldest events are dropped once `max_events`
    is reached.
    """

    def __init__(self, *, max_events: int = 1000, logger: Optional[logging.Logger] = None) -> None:
        if max_events <= 0:
            raise ValueError("max_events must be > 0")
        self._events: Deque[AuditEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()
        self._log = logger or LOG

    def log_api_key_usage(
        self,
        provider_name: str,
        operation_name: str,
        success: bool,
        api_key_id: Optional[str] = None,
    ) -> None:
        key_hash = hash_key_id(api_key_id)
        outcome = "succeeded" if success else "failed"
        message = f"API key usage for {provider_name}.{operation_name} {outcome}"
        event = AuditEvent(
            id=uuid.uuid4().hex,
            timestamp=datetime.now(timezone.utc),
            event_type=API_KEY_USAGE_EVENT,
            message=message,
            provider=provider_name,
            operation=operation_name,
            success=bool(success),
            key_hash=key_hash,
            severity=AuditSeverity.LOW if success else AuditSeverity.STANDARD,
        )
        with self._lock:
            self._events.append(event)

        level = logging.INFO if success else logging.WARNING
        self._log.log(level, "%s (key=%s)", message, key_hash or "-")

    def events(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        success: Optional[bool] = None,
    ) -> List[AuditEvent]:
        """Return buffered events, oldest first, filtered by time range and outcome."""
        with self._lock:
            snapshot = list(self._events)
        out: List[AuditEvent] = []
        for ev in snapshot:
            if start is not None and ev.timestamp < start:
                continue
            if end is not None and ev.timestamp > end:
                continue
            if success is not None and ev.success != success:
                continue
            out.append(ev)
        return out

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


__all__ = [
    "API_KEY_USAGE_EVENT",
    "AuditEvent",
    "AuditSeverity",
    "AuditSink",
    "NoopAuditSink",
    "SecurityAuditLog",
    "hash_key_id",
]
