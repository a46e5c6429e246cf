# hlpai_sdk/providers/lmstudio.py
# SPDX-License-Identifier: Apache-2.0
"""LM Studio provider (OpenAI-compatible local server on /v1)."""

from __future__ import annotations

from typing import Any, List, Optional

import httpx

from hlpai_sdk.core.types import ProviderType
from hlpai_sdk.providers.base import HttpProvider, chat_messages
from hlpai_sdk.providers.constants import DEFAULT_MAX_TOKENS, DEFAULT_TIMEOUT_S


class LmStudioProvider(HttpProvider):
    provider_type = ProviderType.LM_STUDIO
    probe_path = "/v1/models"

    def __init__(
        self,
        *,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        super().__init__(model=model, base_url=base_url, client=client, timeout_s=timeout_s)
        self._max_tokens = int(max_tokens)

    async def generate(
        self,
        prompt: str,
        context: Optional[str] = None,
        temperature: float = 0.7,
    ) -> str:
        payload = {
            "model": self.current_model,
            "messages": chat_messages(prompt, context),
            "temperature": temperature,
            "max_tokens": self._max_tokens,
            "stream": False,
        }
        data = await self._post_json("/v1/chat/completions", payload)
        content = _first_choice_content(data)
        if content is None:
            raise self._invalid_response()
        return content

    async def get_models(self) -> List[str]:
        data = await self._get_json("/v1/models")
        entries = data.get("data") if isinstance(data, dict) else None
        return [str(m["id"]) for m in entries or [] if isinstance(m, dict) and m.get("id")]


def _first_choice_content(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message") or {}
    content = message.get("content")
    return None if content is None else str(content)


__all__ = ["LmStudioProvider"]
