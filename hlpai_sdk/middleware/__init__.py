# hlpai_sdk/middleware/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Operation Execution Middleware - Public API

Validation, rate limiting, bounded retries and error classification around
AI provider calls. All public types are re-exported here for clean imports.
"""

from hlpai_sdk.core.errors import (
    # Error types
    ErrorKind,
    NON_RETRYABLE_KINDS,
    AiOperationError,
)
from hlpai_sdk.core.types import ProviderType
from hlpai_sdk.middleware.context import (
    # Context and configuration
    OperationContext,
    OperationConfiguration,
)
from hlpai_sdk.middleware.classifier import classify_exception, is_retryable
from hlpai_sdk.middleware.rate_limit import SlidingWindowRateLimiter
from hlpai_sdk.middleware.retry import RetryPolicy, retry_async
from hlpai_sdk.middleware.statistics import OperationStatistics, RetryCounters
from hlpai_sdk.middleware.audit import (
    # Audit
    AuditEvent,
    AuditSeverity,
    AuditSink,
    NoopAuditSink,
    SecurityAuditLog,
    hash_key_id,
)
from hlpai_sdk.middleware.metrics import MetricsSink, NoopMetrics
from hlpai_sdk.middleware.results import OperationResult
from hlpai_sdk.middleware.middleware import OperationMiddleware, operation_key

__all__ = [
    # Error types
    "ErrorKind",
    "NON_RETRYABLE_KINDS",
    "AiOperationError",
    "ProviderType",

    # Context and configuration
    "OperationContext",
    "OperationConfiguration",

    # Classification, rate limiting, retry
    "classify_exception",
    "is_retryable",
    "SlidingWindowRateLimiter",
    "RetryPolicy",
    "retry_async",

    # Statistics and audit
    "OperationStatistics",
    "RetryCounters",
    "AuditEvent",
    "AuditSeverity",
    "AuditSink",
    "NoopAuditSink",
    "SecurityAuditLog",
    "hash_key_id",

    # Metrics
    "MetricsSink",
    "NoopMetrics",

    # Results and orchestration
    "OperationResult",
    "OperationMiddleware",
    "operation_key",
]
