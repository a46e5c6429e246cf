# hlpai_sdk/providers/anthropic_provider.py
# SPDX-License-Identifier: Apache-2.0
"""
Anthropic provider built on the official `anthropic` client (`AsyncAnthropic`).

- Supporting context is sent as the ``system`` prompt.
- Temperature is clamped to Anthropic's accepted range [0.0, 1.0].
- The SDK retry loop is disabled; OperationMiddleware owns retries.
- Model listing returns a fixed list of known Claude models.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import anthropic
from anthropic import AsyncAnthropic

from hlpai_sdk.core.errors import AiOperationError, ErrorKind
from hlpai_sdk.core.types import ProviderType
from hlpai_sdk.providers.base import (
    ApiUsageInfo,
    BaseProvider,
    RateLimitInfo,
    rate_limit_from_headers,
    retry_after_ms,
    status_fallback,
    translate_status,
)
from hlpai_sdk.providers.constants import (
    ANTHROPIC_KNOWN_MODELS,
    ANTHROPIC_MAX_TOKENS,
    ANTHROPIC_RATE_LIMIT_HEADERS,
    DEFAULT_TIMEOUT_S,
)

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseProvider):
    """
    Cloud provider backed by the Anthropic Messages API.

    Parameters
    ----------
    api_key:
        Required; an empty key raises ValueError.
    client:
        Pre-configured `AsyncAnthropic` client. Not closed by `close()`.
    """

    provider_type = ProviderType.ANTHROPIC

    # One-token request used by availability, key and rate-limit probes.
    _PROBE_KWARGS: Dict[str, Any] = {
        "max_tokens": 1,
        "messages": [{"role": "user", "content": "Hi"}],
    }

    def __init__(
        self,
        api_key: str,
        *,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[AsyncAnthropic] = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        max_tokens: int = ANTHROPIC_MAX_TOKENS,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ValueError("API key cannot be null or empty")
        super().__init__(model=model, base_url=base_url)
        self._api_key = api_key
        self._max_tokens = int(max_tokens)
        self._owns_client = client is None
        self._client = client or AsyncAnthropic(
            api_key=api_key,
            base_url=self.base_url,
            timeout=timeout_s,
            max_retries=0,
        )

    @property
    def api_key(self) -> str:
        return self._api_key

    def _translate_error(self, err: Exception) -> AiOperationError:
        name = self.provider_name
        if isinstance(err, anthropic.APITimeoutError):
            return AiOperationError(
                f"{name} request timed out", kind=ErrorKind.TIMEOUT, retryable=True
            )
        if isinstance(err, anthropic.APIConnectionError):
            return AiOperationError(
                str(err) or f"{name} API connection error",
                kind=ErrorKind.NETWORK_ERROR,
                retryable=True,
            )
        if isinstance(err, anthropic.APIStatusError):
            status = int(getattr(err, "status_code", 0) or 0)
            message = str(err)
            # 529 is Anthropic's "overloaded" status.
            if status == 529:
                return AiOperationError(
                    f"{name} is overloaded", kind=ErrorKind.NETWORK_ERROR, retryable=True
                )
            headers = getattr(getattr(err, "response", None), "headers", None)
            return translate_status(
                status,
                message,
                provider_name=name,
                retry_after_ms=retry_after_ms(headers),
            ) or status_fallback(status, message, provider_name=name)
        return AiOperationError(str(err) or f"{name} API error", kind=ErrorKind.UNKNOWN_ERROR)

    async def _create(self, **kwargs: Any) -> Any:
        try:
            return await self._client.messages.create(model=self.current_model, **kwargs)
        except anthropic.AnthropicError as exc:
            raise self._translate_error(exc) from exc

    async def generate(
        self,
        prompt: str,
        context: Optional[str] = None,
        temperature: float = 0.7,
    ) -> str:
        kwargs: Dict[str, Any] = {
            "max_tokens": self._max_tokens,
            "temperature": min(max(float(temperature), 0.0), 1.0),
            "messages": [{"role": "user", "content": prompt}],
        }
        if context:
            kwargs["system"] = context
        resp = await self._create(**kwargs)
        return "".join(
            getattr(block, "text", "") or ""
            for block in getattr(resp, "content", None) or []
            if getattr(block, "type", None) == "text"
        )

    async def get_models(self) -> List[str]:
        logger.debug("Returning known Anthropic models")
        return list(ANTHROPIC_KNOWN_MODELS)

    async def _probe(self) -> None:
        await self._create(**self._PROBE_KWARGS)

    async def is_available(self) -> bool:
        try:
            await self._probe()
            return True
        except AiOperationError as exc:
            logger.warning("%s availability check failed: %s", self.provider_name, exc)
            return False

    async def validate_api_key(self) -> bool:
        try:
            await self._probe()
            return True
        except AiOperationError as exc:
            logger.debug("%s API key validation failed: %s", self.provider_name, exc)
            return False

    async def get_usage_info(self) -> Optional[ApiUsageInfo]:
        logger.debug("Usage info not available through the %s API", self.provider_name)
        return None

    async def get_rate_limit_info(self) -> Optional[RateLimitInfo]:
        """Send a one-token message and read the rate-limit response headers."""
        try:
            raw = await self._client.messages.with_raw_response.create(
                model=self.current_model, **self._PROBE_KWARGS
            )
        except anthropic.AnthropicError as exc:
            raise self._translate_error(exc) from exc
        return rate_limit_from_headers(raw.headers, ANTHROPIC_RATE_LIMIT_HEADERS)

    async def close(self) -> None:
        """Close the owned client; injected clients are left open."""
        if not self._owns_client:
            return
        close = getattr(self._client, "close", None)
        if close is None:
            return
        try:
            result = close()
            if asyncio.iscoroutine(result):
                await result
        except Exception:  # noqa: BLE001
            logger.debug("AnthropicProvider close() failed", exc_info=True)


__all__ = ["AnthropicProvider"]
