# hlpai_sdk/providers/openai_provider.py
# SPDX-License-Identifier: Apache-2.0
"""
OpenAI provider built on the official `openai` client (`AsyncOpenAI`).

The SDK's own retry loop is disabled (``max_retries=0``) so that retries are
governed solely by OperationMiddleware. SDK errors are normalized into
`AiOperationError` before they leave the provider.

Usage
-----
    from hlpai_sdk.providers.openai_provider import OpenAIProvider

    async with OpenAIProvider(api_key="sk-...") as provider:
        text = await provider.generate("Hello!")
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional

import openai
from openai import AsyncOpenAI

from hlpai_sdk.core.errors import AiOperationError, ErrorKind
from hlpai_sdk.core.types import ProviderType
from hlpai_sdk.providers.base import (
    ApiUsageInfo,
    BaseProvider,
    RateLimitInfo,
    chat_messages,
    rate_limit_from_headers,
    retry_after_ms,
    status_fallback,
    translate_status,
)
from hlpai_sdk.providers.constants import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TIMEOUT_S,
    OPENAI_RATE_LIMIT_HEADERS,
)

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    """
    Cloud provider backed by the OpenAI Chat Completions API.

    Parameters
    ----------
    api_key:
        Required; an empty key raises ValueError.
    client:
        Pre-configured `AsyncOpenAI` client. Not closed by `close()`.
    model, base_url, timeout_s, max_tokens:
        Request defaults for the owned client.
    """

    provider_type = ProviderType.OPENAI

    def __init__(
        self,
        api_key: str,
        *,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ValueError("API key cannot be null or empty")
        super().__init__(model=model, base_url=base_url)
        self._api_key = api_key
        self._max_tokens = int(max_tokens)
        self._owns_client = client is None
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            timeout=timeout_s,
            max_retries=0,
        )

    @property
    def api_key(self) -> str:
        return self._api_key

    def _translate_error(self, err: Exception) -> AiOperationError:
        """
        Map OpenAI client errors onto the error taxonomy.

        Timeouts are checked before connection errors because the SDK's
        timeout error subclasses its connection error.
        """
        name = self.provider_name
        if isinstance(err, openai.APITimeoutError):
            return AiOperationError(
                f"{name} request timed out", kind=ErrorKind.TIMEOUT, retryable=True
            )
        if isinstance(err, openai.APIConnectionError):
            return AiOperationError(
                str(err) or f"{name} API connection error",
                kind=ErrorKind.NETWORK_ERROR,
                retryable=True,
            )
        if isinstance(err, openai.APIStatusError):
            status = int(getattr(err, "status_code", 0) or 0)
            message = str(err)
            headers = getattr(getattr(err, "response", None), "headers", None)
            return translate_status(
                status,
                message,
                provider_name=name,
                retry_after_ms=retry_after_ms(headers),
            ) or status_fallback(status, message, provider_name=name)
        return AiOperationError(str(err) or f"{name} API error", kind=ErrorKind.UNKNOWN_ERROR)

    async def generate(
        self,
        prompt: str,
        context: Optional[str] = None,
        temperature: float = 0.7,
    ) -> str:
        try:
            resp = await self._client.chat.completions.create(
                model=self.current_model,
                messages=chat_messages(prompt, context),
                temperature=temperature,
                max_tokens=self._max_tokens,
            )
        except openai.OpenAIError as exc:
            raise self._translate_error(exc) from exc
        return _completion_text(resp, self.provider_name)

    async def get_models(self) -> List[str]:
        try:
            page = await self._client.models.list()
        except openai.OpenAIError as exc:
            raise self._translate_error(exc) from exc
        return [m.id for m in getattr(page, "data", None) or []]

    async def is_available(self) -> bool:
        try:
            await self._client.models.list()
            return True
        except openai.OpenAIError as exc:
            logger.warning("%s availability check failed: %s", self.provider_name, exc)
            return False

    async def validate_api_key(self) -> bool:
        try:
            await self._client.models.list()
            return True
        except openai.OpenAIError as exc:
            logger.debug("%s API key validation failed: %s", self.provider_name, exc)
            return False

    async def get_usage_info(self) -> Optional[ApiUsageInfo]:
        # Usage lives behind a separate billing API with its own credentials.
        logger.debug("Usage info not available through the %s API", self.provider_name)
        return None

    async def get_rate_limit_info(self) -> Optional[RateLimitInfo]:
        """Read the request/token budget from the headers of a models listing."""
        try:
            raw = await self._client.models.with_raw_response.list()
        except openai.OpenAIError as exc:
            raise self._translate_error(exc) from exc
        return rate_limit_from_headers(raw.headers, OPENAI_RATE_LIMIT_HEADERS)

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
            logger.debug("%s close() failed", type(self).__name__, exc_info=True)


def _completion_text(resp: Any, provider_name: str) -> str:
    choices = getattr(resp, "choices", None) or []
    if not choices:
        raise AiOperationError(
            f"Invalid response format from {provider_name}", kind=ErrorKind.UNKNOWN_ERROR
        )
    message = getattr(choices[0], "message", None)
    return getattr(message, "content", None) or ""


__all__ = ["OpenAIProvider"]
