# hlpai_sdk/core/errors.py
# SPDX-License-Identifier: Apache-2.0
"""
Normalized error taxonomy for AI operations.

Every failure that leaves `OperationMiddleware.execute()` is represented by a
single exception type, `AiOperationError`, tagged with an `ErrorKind` and a
`retryable` flag. Providers MAY raise it directly (for example to report a
quota or a missing model with their own retry hint); everything else is
normalized by `hlpai_sdk.middleware.classifier`.

Kinds that are never retryable, whatever the caller asks for:

    ValidationError, AuthenticationError, ConfigurationError
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional


class ErrorKind(str, Enum):
    """Taxonomy of AI operation failures."""

    UNKNOWN_ERROR = "UnknownError"
    NETWORK_ERROR = "NetworkError"
    TIMEOUT = "Timeout"
    AUTHENTICATION_ERROR = "AuthenticationError"
    VALIDATION_ERROR = "ValidationError"
    CONFIGURATION_ERROR = "ConfigurationError"
    RATE_LIMIT_EXCEEDED = "RateLimitExceeded"
    MODEL_NOT_AVAILABLE = "ModelNotAvailable"
    INSUFFICIENT_QUOTA = "InsufficientQuota"


NON_RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.VALIDATION_ERROR,
        ErrorKind.AUTHENTICATION_ERROR,
        ErrorKind.CONFIGURATION_ERROR,
    }
)


class AiOperationError(Exception):
    """
    Classified AI operation error.

    Attributes:
        message:
            Human-readable description (safe for logs and clients).
        kind:
            ErrorKind bucket used by callers and metrics.
        retryable:
            Whether re-invoking the same operation has a reasonable chance of
            succeeding. Forced to False for NON_RETRYABLE_KINDS.
        details:
            Additional JSON-safe context (never include secrets).
        cause:
            The original exception, when this error wraps one.
    """

    def __init__(
        self,
        message: str = "",
        *,
        kind: ErrorKind = ErrorKind.UNKNOWN_ERROR,
        retryable: bool = False,
        details: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = ErrorKind(kind)
        self.retryable = bool(retryable) and self.kind not in NON_RETRYABLE_KINDS
        self.details = dict(details or {})

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__

    def __str__(self) -> str:
        base = self.message or self.kind.value
        base += f" [kind={self.kind.value}]"
        if self.retryable:
            base += " [retryable]"
        if self.details:
            base += f" details={self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation used in result envelopes."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "retryable": self.retryable,
            "cause": type(self.__cause__).__name__ if self.__cause__ is not None else None,
            "details": self.details or None,
        }


__all__ = [
    "ErrorKind",
    "NON_RETRYABLE_KINDS",
    "AiOperationError",
]
