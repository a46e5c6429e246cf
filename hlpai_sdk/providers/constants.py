# hlpai_sdk/providers/constants.py
# SPDX-License-Identifier: Apache-2.0
"""Default endpoints, models and descriptions for each provider type."""

from __future__ import annotations

from typing import Dict, Tuple

from hlpai_sdk.core.types import ProviderType

DEFAULT_URLS: Dict[ProviderType, str] = {
    ProviderType.OLLAMA: "http://localhost:11434",
    ProviderType.LM_STUDIO: "http://localhost:1234",
    ProviderType.OPEN_WEB_UI: "http://localhost:3000",
    ProviderType.OPENAI: "https://api.openai.com/v1",
    ProviderType.ANTHROPIC: "https://api.anthropic.com",
    ProviderType.DEEPSEEK: "https://api.deepseek.com/v1",
}

DEFAULT_MODELS: Dict[ProviderType, str] = {
    ProviderType.OLLAMA: "llama3.2",
    ProviderType.LM_STUDIO: "default",
    ProviderType.OPEN_WEB_UI: "default",
    ProviderType.OPENAI: "gpt-4o-mini",
    ProviderType.ANTHROPIC: "claude-3-5-haiku-20241022",
    ProviderType.DEEPSEEK: "deepseek-chat",
}

DESCRIPTIONS: Dict[ProviderType, str] = {
    ProviderType.OLLAMA: "Local model runner",
    ProviderType.LM_STUDIO: "Local API server with GUI",
    ProviderType.OPEN_WEB_UI: "Web-based model management",
    ProviderType.OPENAI: "OpenAI cloud API",
    ProviderType.ANTHROPIC: "Anthropic Claude cloud API",
    ProviderType.DEEPSEEK: "DeepSeek cloud API",
}

# Anthropic exposes no model listing in the messages API surface we use.
ANTHROPIC_KNOWN_MODELS: Tuple[str, ...] = (
    "claude-3-5-sonnet-20241022",
    "claude-3-5-haiku-20241022",
    "claude-3-opus-20240229",
    "claude-3-sonnet-20240229",
    "claude-3-haiku-20240307",
)

DEFAULT_TIMEOUT_S = 300.0
DEFAULT_MAX_TOKENS = 4096
ANTHROPIC_MAX_TOKENS = 4000

# Sampling options sent with every Ollama generate request.
OLLAMA_TOP_P = 0.9
OLLAMA_TOP_K = 40

# Rate-limit response headers: requests limit, requests remaining, tokens limit,
# tokens remaining.
OPENAI_RATE_LIMIT_HEADERS: Tuple[str, str, str, str] = (
    "x-ratelimit-limit-requests",
    "x-ratelimit-remaining-requests",
    "x-ratelimit-limit-tokens",
    "x-ratelimit-remaining-tokens",
)
ANTHROPIC_RATE_LIMIT_HEADERS: Tuple[str, str, str, str] = (
    "anthropic-ratelimit-requests-limit",
    "anthropic-ratelimit-requests-remaining",
    "anthropic-ratelimit-tokens-limit",
    "anthropic-ratelimit-tokens-remaining",
)


__all__ = [
    "DEFAULT_URLS",
    "DEFAULT_MODELS",
    "DESCRIPTIONS",
    "ANTHROPIC_KNOWN_MODELS",
    "DEFAULT_TIMEOUT_S",
    "DEFAULT_MAX_TOKENS",
    "ANTHROPIC_MAX_TOKENS",
    "OLLAMA_TOP_P",
    "OLLAMA_TOP_K",
    "OPENAI_RATE_LIMIT_HEADERS",
    "ANTHROPIC_RATE_LIMIT_HEADERS",
]
