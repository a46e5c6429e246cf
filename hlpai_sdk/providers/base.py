# hlpai_sdk/providers/base.py
# SPDX-License-Identifier: Apache-2.0
"""
Provider capability contract and shared plumbing.

Every backend variant satisfies `AiProvider`; cloud variants additionally
satisfy `CloudAiProvider`. Providers raise, they do not return error strings:
HTTP status failures with a clear meaning are translated into
`AiOperationError` here, while transport failures (connect errors, timeouts)
propagate raw so `classify_exception()` can bucket them.

Providers own the HTTP/SDK client they create and close it in `close()`;
injected clients are left open for the caller to manage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

import httpx

from hlpai_sdk.core.errors import AiOperationError, ErrorKind
from hlpai_sdk.core.types import ProviderType
from hlpai_sdk.providers.constants import DEFAULT_MODELS, DEFAULT_TIMEOUT_S, DEFAULT_URLS

logger = logging.getLogger(__name__)

_RETRYABLE_HTTP_STATUS = frozenset({502, 503, 504})


@dataclass(frozen=True)
class ApiUsageInfo:
    """Account usage for an API key, where a provider exposes it."""

    requests_used: int
    requests_limit: int
    tokens_used: int
    tokens_limit: int
    reset_date: datetime


@dataclass(frozen=True)
class RateLimitInfo:
    """
    Rate-limit budget reported in a provider's response headers.

    Token fields are 0 when the provider does not report them. Providers do
    not send a reset time in a parseable form, so `reset_time` is the time
    of the reading plus one minute.
    """

    requests_per_minute: int
    requests_remaining: int
    tokens_per_minute: int
    tokens_remaining: int
    reset_time: datetime


@runtime_checkable
class AiProvider(Protocol):
    """Capability every AI backend exposes to the middleware."""

    @property
    def provider_type(self) -> ProviderType: ...

    @property
    def provider_name(self) -> str: ...

    @property
    def default_model(self) -> str: ...

    @property
    def base_url(self) -> str: ...

    @property
    def current_model(self) -> str: ...

    async def generate(
        self,
        prompt: str,
        context: Optional[str] = None,
        temperature: float = 0.7,
    ) -> str: ...

    async def is_available(self) -> bool: ...

    async def get_models(self) -> List[str]: ...

    async def close(self) -> None: ...


@runtime_checkable
class CloudAiProvider(AiProvider, Protocol):
    """Cloud backends authenticated with an API key."""

    @property
    def api_key(self) -> str: ...

    async def validate_api_key(self) -> bool: ...

    async def get_usage_info(self) -> Optional[ApiUsageInfo]: ...

    async def get_rate_limit_info(self) -> Optional[RateLimitInfo]: ...


class BaseProvider:
    """
    Identity fields and async context management shared by all variants.

    Subclasses set `provider_type` and implement generate / is_available /
    get_models / close.
    """

    provider_type: ProviderType

    def __init__(self, *, model: Optional[str] = None, base_url: Optional[str] = None) -> None:
        self._current_model = model or self.default_model
        self._base_url = (base_url or DEFAULT_URLS[self.provider_type]).rstrip("/")

    @property
    def provider_name(self) -> str:
        return self.provider_type.value

    @property
    def default_model(self) -> str:
        return DEFAULT_MODELS[self.provider_type]

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def current_model(self) -> str:
        return self._current_model

    @current_model.setter
    def current_model(self, model: str) -> None:
        if not model or not model.strip():
            raise ValueError("model cannot be empty")
        self._current_model = model

    async def close(self) -> None:
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_url={self._base_url!r}, model={self._current_model!r})"


class HttpProvider(BaseProvider):
    """
    Base for providers spoken to over plain HTTP+JSON with httpx.

    Parameters
    ----------
    model:
        Model used for generation; defaults to the provider's default model.
    base_url:
        Server root, e.g. ``http://localhost:11434``.
    client:
        Pre-configured `httpx.AsyncClient`. Not closed by `close()`.
    timeout_s:
        Request timeout for the owned client.
    """

    # GET endpoint used by is_available().
    probe_path: str = "/"

    def __init__(
        self,
        *,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(model=model, base_url=base_url)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_s, headers=dict(headers or {}))

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    async def _get_json(self, path: str) -> Any:
        logger.debug("GET %s", self._url(path))
        resp = await self._client.get(self._url(path))
        self._raise_for_status(resp)
        return self._decode(resp)

    async def _post_json(self, path: str, payload: Mapping[str, Any]) -> Any:
        logger.debug("Sending request to %s: %s", self.provider_name, self._url(path))
        resp = await self._client.post(self._url(path), json=dict(payload))
        self._raise_for_status(resp)
        return self._decode(resp)

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        logger.error(
            "%s API error: %s - %s", self.provider_name, resp.status_code, resp.text[:200]
        )
        err = translate_status(
            resp.status_code,
            resp.text,
            provider_name=self.provider_name,
            retry_after_ms=retry_after_ms(resp.headers),
        )
        if err is not None:
            raise err
        # Remaining statuses go to the classifier as httpx.HTTPStatusError.
        resp.raise_for_status()

    def _decode(self, resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise self._invalid_response() from exc

    def _invalid_response(self) -> AiOperationError:
        return AiOperationError(
            f"Invalid response format from {self.provider_name}",
            kind=ErrorKind.UNKNOWN_ERROR,
        )

    async def is_available(self) -> bool:
        try:
            resp = await self._client.get(self._url(self.probe_path))
        except httpx.HTTPError as exc:
            logger.warning("%s availability check failed: %s", self.provider_name, exc)
            return False
        return resp.is_success

    async def close(self) -> None:
        """Close the owned httpx client; injected clients are left open."""
        if not self._owns_client:
            return
        try:
            await self._client.aclose()
        except Exception:  # noqa: BLE001
            logger.debug("%s close() failed", type(self).__name__, exc_info=True)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def compose_prompt(prompt: str, context: Optional[str]) -> str:
    """Fold supporting context into a single completion prompt."""
    if context is None:
        return prompt
    return f"Context: {context}\n\nQuestion: {prompt}"


def chat_messages(prompt: str, context: Optional[str]) -> List[Dict[str, str]]:
    """Chat-format messages; context becomes the system message."""
    out: List[Dict[str, str]] = []
    if context:
        out.append({"role": "system", "content": context})
    out.append({"role": "user", "content": prompt})
    return out


def retry_after_ms(headers: Optional[Mapping[str, str]]) -> Optional[int]:
    """Best-effort extraction of a Retry-After header (seconds) as milliseconds."""
    if not headers:
        return None
    val = headers.get("retry-after")
    if val is None:
        return None
    try:
        return max(0, int(str(val).strip())) * 1000
    except ValueError:
        return None


def _header_int(headers: Mapping[str, str], name: str) -> Optional[int]:
    val = headers.get(name)
    if val is None:
        return None
    try:
        return int(str(val).strip())
    except ValueError:
        return None


def rate_limit_from_headers(
    headers: Optional[Mapping[str, str]],
    names: Sequence[str],
    *,
    now: Optional[datetime] = None,
) -> Optional[RateLimitInfo]:
    """
    Build a RateLimitInfo from response headers.

    `names` lists the requests-limit, requests-remaining, tokens-limit and
    tokens-remaining header names. Returns None unless both request headers
    are present and integral; missing token headers read as 0.
    """
    if not headers:
        return None
    req_limit_name, req_remaining_name, tok_limit_name, tok_remaining_name = names
    limit = _header_int(headers, req_limit_name)
    remaining = _header_int(headers, req_remaining_name)
    if limit is None or remaining is None:
        return None
    now = now or datetime.now(timezone.utc)
    return RateLimitInfo(
        requests_per_minute=limit,
        requests_remaining=remaining,
        tokens_per_minute=_header_int(headers, tok_limit_name) or 0,
        tokens_remaining=_header_int(headers, tok_remaining_name) or 0,
        reset_time=now + timedelta(minutes=1),
    )


def translate_status(
    status: int,
    message: str,
    *,
    provider_name: str,
    retry_after_ms: Optional[int] = None,
) -> Optional[AiOperationError]:
    """
    Map an HTTP error status onto the error taxonomy.

    Returns None for statuses without a provider-level meaning (e.g. 500, 502);
    callers either re-raise the transport error or fall back themselves.
    """
    details: Dict[str, Any] = {"status": status}
    if retry_after_ms is not None:
        details["retry_after_ms"] = retry_after_ms
    text = (message or "").strip()

    if status in (401, 403):
        return AiOperationError(
            f"Authentication failed for {provider_name}",
            kind=ErrorKind.AUTHENTICATION_ERROR,
            details=details,
        )
    if status == 402 or (status == 429 and "insufficient_quota" in text.lower()):
        return AiOperationError(
            text or f"{provider_name} quota exhausted",
            kind=ErrorKind.INSUFFICIENT_QUOTA,
            details=details,
        )
    if status == 404:
        return AiOperationError(
            text or f"Requested {provider_name} model is not available",
            kind=ErrorKind.MODEL_NOT_AVAILABLE,
            details=details,
        )
    if status == 429:
        return AiOperationError(
            f"{provider_name} rate limit exceeded",
            kind=ErrorKind.RATE_LIMIT_EXCEEDED,
            retryable=True,
            details=details,
        )
    if status in (400, 422):
        return AiOperationError(
            text or f"{provider_name} request is invalid",
            kind=ErrorKind.VALIDATION_ERROR,
            details=details,
        )
    return None


def status_fallback(status: int, message: str, *, provider_name: str) -> AiOperationError:
    """Error for statuses `translate_status` leaves unmapped."""
    return AiOperationError(
        message or f"{provider_name} error (status={status})",
        kind=ErrorKind.NETWORK_ERROR,
        retryable=status in _RETRYABLE_HTTP_STATUS,
        details={"status": status},
    )


__all__ = [
    "ApiUsageInfo",
    "RateLimitInfo",
    "AiProvider",
    "CloudAiProvider",
    "BaseProvider",
    "HttpProvider",
    "compose_prompt",
    "chat_messages",
    "retry_after_ms",
    "rate_limit_from_headers",
    "translate_status",
    "status_fallback",
]
