# hlpai_sdk/providers/deepseek.py
# SPDX-License-Identifier: Apache-2.0
"""DeepSeek provider; DeepSeek serves an OpenAI-compatible API."""

from __future__ import annotations

from hlpai_sdk.core.types import ProviderType
from hlpai_sdk.providers.openai_provider import OpenAIProvider


class DeepSeekProvider(OpenAIProvider):
    provider_type = ProviderType.DEEPSEEK


__all__ = ["DeepSeekProvider"]
