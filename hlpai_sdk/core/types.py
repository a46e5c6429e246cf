# hlpai_sdk/core/types.py
# SPDX-License-Identifier: Apache-2.0
"""Provider identity shared by the middleware and the provider variants."""

from __future__ import annotations

from enum import Enum


class ProviderType(str, Enum):
    """Closed set of supported AI backends."""

    OLLAMA = "Ollama"
    LM_STUDIO = "LmStudio"
    OPEN_WEB_UI = "OpenWebUi"
    OPENAI = "OpenAI"
    ANTHROPIC = "Anthropic"
    DEEPSEEK = "DeepSeek"

    @property
    def is_cloud(self) -> bool:
        return self in _CLOUD_PROVIDERS


_CLOUD_PROVIDERS = frozenset({ProviderType.OPENAI, ProviderType.ANTHROPIC, ProviderType.DEEPSEEK})


__all__ = ["ProviderType"]
