# hlpai_sdk/providers/ollama.py
# SPDX-License-Identifier: Apache-2.0
"""
Ollama provider.

Talks to a local Ollama server over its native REST API:

    POST /api/generate   {model, prompt, stream: false, options: {...}} -> {"response": ...}
    GET  /api/tags       -> {"models": [{"name": ...}, ...]}

Usage
-----
    async with OllamaProvider(model="llama3.2") as provider:
        text = await provider.generate("Why is the sky blue?")
"""

from __future__ import annotations

from typing import List, Optional

from hlpai_sdk.core.types import ProviderType
from hlpai_sdk.providers.base import HttpProvider, compose_prompt
from hlpai_sdk.providers.constants import OLLAMA_TOP_K, OLLAMA_TOP_P


class OllamaProvider(HttpProvider):
    provider_type = ProviderType.OLLAMA
    probe_path = "/api/tags"

    async def generate(
        self,
        prompt: str,
        context: Optional[str] = None,
        temperature: float = 0.7,
    ) -> str:
        payload = {
            "model": self.current_model,
            "prompt": compose_prompt(prompt, context),
            "stream": False,
            "options": {
                "temperature": temperature,
                "top_p": OLLAMA_TOP_P,
                "top_k": OLLAMA_TOP_K,
            },
        }
        data = await self._post_json("/api/generate", payload)
        if not isinstance(data, dict) or "response" not in data:
            raise self._invalid_response()
        return str(data["response"] or "")

    async def get_models(self) -> List[str]:
        data = await self._get_json("/api/tags")
        models = data.get("models") if isinstance(data, dict) else None
        return [str(m["name"]) for m in models or [] if isinstance(m, dict) and m.get("name")]


__all__ = ["OllamaProvider"]
