# hlpai_sdk/providers/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
AI provider variants - Public API

Local runners (Ollama, LM Studio, Open WebUI) over httpx, and cloud APIs
(OpenAI, DeepSeek, Anthropic) over their official async SDKs.
"""

from hlpai_sdk.core.types import ProviderType
from hlpai_sdk.providers.base import (
    # Capability contracts
    AiProvider,
    CloudAiProvider,
    ApiUsageInfo,
    RateLimitInfo,
    BaseProvider,
    HttpProvider,
)
from hlpai_sdk.providers.ollama import OllamaProvider
from hlpai_sdk.providers.lmstudio import LmStudioProvider
from hlpai_sdk.providers.openwebui import OpenWebUiProvider
from hlpai_sdk.providers.openai_provider import OpenAIProvider
from hlpai_sdk.providers.deepseek import DeepSeekProvider
from hlpai_sdk.providers.anthropic_provider import AnthropicProvider
from hlpai_sdk.providers.factory import (
    # Construction and discovery
    ProviderInfo,
    create_provider,
    get_provider_info,
    get_provider_descriptions,
    detect_available_providers,
)
from hlpai_sdk.providers.operations import (
    # Middleware-wrapped calls
    execute_with_middleware,
    generate_with_middleware,
    is_available_with_middleware,
    get_models_with_middleware,
    validate_api_key_with_middleware,
    get_usage_info_with_middleware,
    get_rate_limit_info_with_middleware,
)

__all__ = [
    "ProviderType",

    # Capability contracts
    "AiProvider",
    "CloudAiProvider",
    "ApiUsageInfo",
    "RateLimitInfo",
    "BaseProvider",
    "HttpProvider",

    # Variants
    "OllamaProvider",
    "LmStudioProvider",
    "OpenWebUiProvider",
    "OpenAIProvider",
    "DeepSeekProvider",
    "AnthropicProvider",

    # Construction and discovery
    "ProviderInfo",
    "create_provider",
    "get_provider_info",
    "get_provider_descriptions",
    "detect_available_providers",

    # Middleware-wrapped calls
    "execute_with_middleware",
    "generate_with_middleware",
    "is_available_with_middleware",
    "get_models_with_middleware",
    "validate_api_key_with_middleware",
    "get_usage_info_with_middleware",
    "get_rate_limit_info_with_middleware",
]
