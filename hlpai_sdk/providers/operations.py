# hlpai_sdk/providers/operations.py
# SPDX-License-Identifier: Apache-2.0
"""
Provider calls routed through an OperationMiddleware.

The middleware is an explicit argument: share one instance across calls
that should share rate-limit state and retry statistics.

    middleware = OperationMiddleware(OperationConfiguration.from_env())
    result = await generate_with_middleware(provider, middleware, "Hello")
    if result.is_success:
        print(result.data)
"""

from __future__ import annotations

from typing import Awaitable, Callable, List, Optional, TypeVar

from hlpai_sdk.middleware.context import OperationContext
from hlpai_sdk.middleware.middleware import OperationMiddleware
from hlpai_sdk.middleware.results import OperationResult
from hlpai_sdk.providers.base import AiProvider, ApiUsageInfo, CloudAiProvider, RateLimitInfo

T = TypeVar("T")

GENERATE_TIMEOUT_MS = 300_000
AVAILABILITY_TIMEOUT_MS = 30_000
MODELS_TIMEOUT_MS = 60_000
VALIDATE_KEY_TIMEOUT_MS = 30_000
USAGE_INFO_TIMEOUT_MS = 30_000
RATE_LIMIT_INFO_TIMEOUT_MS = 30_000


def _cloud_context(provider: CloudAiProvider, timeout_ms: int) -> OperationContext:
    # Audit records identify the key by provider class, never by the secret.
    return OperationContext(api_key_id=type(provider).__name__, timeout_ms=timeout_ms)


async def execute_with_middleware(
    provider: AiProvider,
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    middleware: OperationMiddleware,
    context: Optional[OperationContext] = None,
) -> OperationResult[T]:
    return await middleware.execute(operation, operation_name, provider.provider_type, context)


async def generate_with_middleware(
    provider: AiProvider,
    middleware: OperationMiddleware,
    prompt: str,
    *,
    context: Optional[str] = None,
    temperature: float = 0.7,
    max_tokens: int = 4000,
    api_key_id: Optional[str] = None,
) -> OperationResult[str]:
    """
    Generate text; the prompt is length-checked by the middleware before any call.

    `max_tokens` is the token budget the middleware validates (it must be
    > 0). It is not forwarded: the completion length sent upstream is the
    `max_tokens` the provider was constructed with.
    """
    op_ctx = OperationContext(
        api_key_id=api_key_id,
        max_tokens=max_tokens,
        timeout_ms=GENERATE_TIMEOUT_MS,
        prompt=prompt,
    )
    return await execute_with_middleware(
        provider,
        lambda: provider.generate(prompt, context, temperature),
        "Generate",
        middleware,
        op_ctx,
    )


async def is_available_with_middleware(
    provider: AiProvider,
    middleware: OperationMiddleware,
) -> OperationResult[bool]:
    return await execute_with_middleware(
        provider,
        provider.is_available,
        "IsAvailable",
        middleware,
        OperationContext(timeout_ms=AVAILABILITY_TIMEOUT_MS),
    )


async def get_models_with_middleware(
    provider: AiProvider,
    middleware: OperationMiddleware,
) -> OperationResult[List[str]]:
    return await execute_with_middleware(
        provider,
        provider.get_models,
        "GetModels",
        middleware,
        OperationContext(timeout_ms=MODELS_TIMEOUT_MS),
    )


async def validate_api_key_with_middleware(
    provider: CloudAiProvider,
    middleware: OperationMiddleware,
) -> OperationResult[bool]:
    """Validate a cloud key; the audit record identifies the key by provider class."""
    return await execute_with_middleware(
        provider,
        provider.validate_api_key,
        "ValidateApiKey",
        middleware,
        _cloud_context(provider, VALIDATE_KEY_TIMEOUT_MS),
    )


async def get_usage_info_with_middleware(
    provider: CloudAiProvider,
    middleware: OperationMiddleware,
) -> OperationResult[Optional[ApiUsageInfo]]:
    return await execute_with_middleware(
        provider,
        provider.get_usage_info,
        "GetUsageInfo",
        middleware,
        _cloud_context(provider, USAGE_INFO_TIMEOUT_MS),
    )


async def get_rate_limit_info_with_middleware(
    provider: CloudAiProvider,
    middleware: OperationMiddleware,
) -> OperationResult[Optional[RateLimitInfo]]:
    """Read the provider's current rate-limit budget; data is None when unreported."""
    return await execute_with_middleware(
        provider,
        provider.get_rate_limit_info,
        "GetRateLimitInfo",
        middleware,
        _cloud_context(provider, RATE_LIMIT_INFO_TIMEOUT_MS),
    )


__all__ = [
    "execute_with_middleware",
    "generate_with_middleware",
    "is_available_with_middleware",
    "get_models_with_middleware",
    "validate_api_key_with_middleware",
    "get_usage_info_with_middleware",
    "get_rate_limit_info_with_middleware",
]
