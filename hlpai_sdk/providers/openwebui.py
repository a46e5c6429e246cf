# hlpai_sdk/providers/openwebui.py
# SPDX-License-Identifier: Apache-2.0
"""
Open WebUI provider.

Open WebUI answers chat requests either in chat format
(``{"message": {"content": ...}}``) or with a bare ``{"response": ...}``;
both are accepted. Model listings come back under ``models`` or ``data``.
"""

from __future__ import annotations

from typing import Any, List, Optional

import httpx

from hlpai_sdk.core.types import ProviderType
from hlpai_sdk.providers.base import HttpProvider, chat_messages
from hlpai_sdk.providers.constants import DEFAULT_MAX_TOKENS, DEFAULT_TIMEOUT_S


class OpenWebUiProvider(HttpProvider):
    provider_type = ProviderType.OPEN_WEB_UI
    probe_path = "/api/models"

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
        data = await self._post_json("/api/chat", payload)
        text = _response_text(data)
        if text is None:
            raise self._invalid_response()
        return text

    async def get_models(self) -> List[str]:
        data = await self._get_json("/api/models")
        if not isinstance(data, dict):
            return []
        entries = data.get("models") or data.get("data") or []
        return [str(m["id"]) for m in entries if isinstance(m, dict) and m.get("id")]


def _response_text(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    message = data.get("message")
    if isinstance(message, dict) and message.get("content") is not None:
        return str(message["content"])
    if data.get("response") is not None:
        return str(data["response"])
    return None


__all__ = ["OpenWebUiProvider"]
