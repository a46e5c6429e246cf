# hlpai_sdk/providers/factory.py
# SPDX-License-Identifier: Apache-2.0
"""
Provider construction and discovery.

`create_provider()` is a pure mapping from ProviderType to a concrete
variant; unknown types and cloud providers without a key are construction
errors (ValueError).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Type, Union

from hlpai_sdk.core.types import ProviderType
from hlpai_sdk.providers.anthropic_provider import AnthropicProvider
from hlpai_sdk.providers.base import BaseProvider
from hlpai_sdk.providers.constants import DEFAULT_MODELS, DEFAULT_TIMEOUT_S, DEFAULT_URLS, DESCRIPTIONS
from hlpai_sdk.providers.deepseek import DeepSeekProvider
from hlpai_sdk.providers.lmstudio import LmStudioProvider
from hlpai_sdk.providers.ollama import OllamaProvider
from hlpai_sdk.providers.openai_provider import OpenAIProvider
from hlpai_sdk.providers.openwebui import OpenWebUiProvider

logger = logging.getLogger(__name__)

_PROVIDER_CLASSES: Dict[ProviderType, Type[BaseProvider]] = {
    ProviderType.OLLAMA: OllamaProvider,
    ProviderType.LM_STUDIO: LmStudioProvider,
    ProviderType.OPEN_WEB_UI: OpenWebUiProvider,
    ProviderType.OPENAI: OpenAIProvider,
    ProviderType.ANTHROPIC: AnthropicProvider,
    ProviderType.DEEPSEEK: DeepSeekProvider,
}


@dataclass(frozen=True)
class ProviderInfo:
    name: str
    description: str
    default_url: str
    default_model: str
    requires_api_key: bool


def _coerce_type(provider_type: Union[ProviderType, str]) -> ProviderType:
    try:
        return ProviderType(provider_type)
    except (TypeError, ValueError):
        raise ValueError(f"Unsupported provider type: {provider_type!r}") from None


def create_provider(
    provider_type: Union[ProviderType, str],
    *,
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    api_key: Optional[str] = None,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> BaseProvider:
    """
    Build the provider variant for `provider_type`.

    Raises:
        ValueError: unknown provider type, or a cloud provider without api_key.
    """
    ptype = _coerce_type(provider_type)
    cls = _PROVIDER_CLASSES[ptype]
    if ptype.is_cloud:
        if not api_key:
            raise ValueError(f"{ptype.value} requires an API key")
        return cls(api_key, model=model, base_url=base_url, timeout_s=timeout_s)
    return cls(model=model, base_url=base_url, timeout_s=timeout_s)


def get_provider_info(provider_type: Union[ProviderType, str]) -> ProviderInfo:
    ptype = _coerce_type(provider_type)
    return ProviderInfo(
        name=ptype.value,
        description=DESCRIPTIONS[ptype],
        default_url=DEFAULT_URLS[ptype],
        default_model=DEFAULT_MODELS[ptype],
        requires_api_key=ptype.is_cloud,
    )


def get_provider_descriptions() -> Dict[ProviderType, str]:
    return {ptype: DESCRIPTIONS[ptype] for ptype in ProviderType}


async def detect_available_providers(
    api_keys: Optional[Mapping[ProviderType, str]] = None,
    *,
    timeout_s: float = 5.0,
) -> List[ProviderType]:
    """
    Probe every provider type and return those that answer.

    Cloud providers are probed only when a key is supplied in `api_keys`.
    Probes run concurrently, every probe is closed afterwards, and probe
    failures are logged, never raised. Results keep ProviderType order.
    """
    keys = dict(api_keys or {})

    async def _probe(ptype: ProviderType) -> bool:
        if ptype.is_cloud and not keys.get(ptype):
            return False
        try:
            provider = create_provider(ptype, api_key=keys.get(ptype), timeout_s=timeout_s)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Skipping %s: %s", ptype.value, exc)
            return False
        try:
            async with provider:
                return await provider.is_available()
        except Exception as exc:  # noqa: BLE001
            logger.debug("%s probe failed: %s", ptype.value, exc)
            return False

    ordered = list(ProviderType)
    found = await asyncio.gather(*(_probe(p) for p in ordered))
    return [p for p, ok in zip(ordered, found) if ok]


__all__ = [
    "ProviderInfo",
    "create_provider",
    "get_provider_info",
    "get_provider_descriptions",
    "detect_available_providers",
]
