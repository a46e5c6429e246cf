# hlpai_sdk/middleware/context.py
# SPDX-License-Identifier: Apache-2.0
"""
Per-call context and process-wide configuration for the operation middleware.

`OperationContext` travels with a single `execute()` call; `OperationConfiguration`
is owned by one `OperationMiddleware` instance and never mutated afterwards.
Both are frozen dataclasses.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

DEFAULT_ENV_PREFIX = "HLPAI_"


@dataclass(frozen=True)
class OperationContext:
    """
    Optional metadata for one AI operation.

    Attributes:
        api_key_id:
            Opaque identifier of the API key used (never the raw secret).
            Forwarded to the audit sink, which hashes it.
        max_tokens:
            Token budget requested from the provider; must be > 0.
        timeout_ms:
            Provider-side timeout budget in milliseconds; must be > 0.
        prompt:
            Prompt text, checked against OperationConfiguration.max_prompt_length.
        metadata:
            Free-form, caller-owned attributes.
    """
    api_key_id: Optional[str] = None
    max_tokens: int = 4000
    timeout_ms: int = 300_000
    prompt: Optional[str] = None
    metadata: Mapping[str, Any] = None

    def __post_init__(self) -> None:
        if self.metadata is None:
            object.__setattr__(self, "metadata", {})


@dataclass(frozen=True)
class OperationConfiguration:
    """
    Tunables for retry, rate limiting and validation.

    Attributes:
        max_retries:             Retries after the first attempt (total attempts = max_retries + 1).
        base_retry_delay_ms:     Backoff before the first retry.
        max_retry_delay_ms:      Backoff cap (jitter is added on top).
        enable_rate_limiting:    Disable to skip admission control entirely.
        max_requests_per_window: Admissions allowed per key per window.
        rate_limit_window_minutes: Sliding window length.
        max_prompt_length:       Upper bound on len(context.prompt).
    """

    max_retries: int = 3
    base_retry_delay_ms: int = 1000
    max_retry_delay_ms: int = 30_000
    enable_rate_limiting: bool = True
    max_requests_per_window: int = 60
    rate_limit_window_minutes: int = 1
    max_prompt_length: int = 100_000

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_retry_delay_ms < 0 or self.max_retry_delay_ms < 0:
            raise ValueError("retry delays must be >= 0")
        if self.max_requests_per_window < 0:
            raise ValueError("max_requests_per_window must be >= 0")
        if self.rate_limit_window_minutes <= 0:
            raise ValueError("rate_limit_window_minutes must be > 0")
        if self.max_prompt_length < 0:
            raise ValueError("max_prompt_length must be >= 0")

    @property
    def rate_limit_window_s(self) -> float:
        return self.rate_limit_window_minutes * 60.0

    @classmethod
    def from_env(
        cls,
        prefix: str = DEFAULT_ENV_PREFIX,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "OperationConfiguration":
        """
        Load configuration from environment variables.

        Unset or empty variables keep the dataclass defaults; malformed values
        raise ValueError naming the offending variable.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            max_retries=_env_int(env, f"{prefix}MAX_RETRIES", defaults.max_retries),
            base_retry_delay_ms=_env_int(
                env, f"{prefix}BASE_RETRY_DELAY_MS", defaults.base_retry_delay_ms
            ),
            max_retry_delay_ms=_env_int(
                env, f"{prefix}MAX_RETRY_DELAY_MS", defaults.max_retry_delay_ms
            ),
            enable_rate_limiting=_env_bool(
                env, f"{prefix}ENABLE_RATE_LIMITING", defaults.enable_rate_limiting
            ),
            max_requests_per_window=_env_int(
                env, f"{prefix}MAX_REQUESTS_PER_WINDOW", defaults.max_requests_per_window
            ),
            rate_limit_window_minutes=_env_int(
                env, f"{prefix}RATE_LIMIT_WINDOW_MINUTES", defaults.rate_limit_window_minutes
            ),
            max_prompt_length=_env_int(
                env, f"{prefix}MAX_PROMPT_LENGTH", defaults.max_prompt_length
            ),
        )


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = (env.get(name) or "").strip().lower()
    if not raw:
        return default
    if raw in {"1", "true", "yes", "y", "on"}:
        return True
    if raw in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


__all__ = [
    "OperationContext",
    "OperationConfiguration",
]
