# hlpai_sdk/middleware/classifier.py
# SPDX-License-Identifier: Apache-2.0
"""
Deterministic exception classification for the retry engine.

`classify_exception()` maps anything an AI operation may raise onto an
`AiOperationError` carrying `{kind, retryable}`. The rules are evaluated top to
bottom; the first match wins:

    raised condition                                   kind                 retryable
    -------------------------------------------------  -------------------  ---------
    AiOperationError (raised by a provider)            as carried           as carried
    TimeoutError, httpx.TimeoutException,
      asyncio.CancelledError from the operation        Timeout              yes
    httpx.HTTPStatusError 401/403, PermissionError     AuthenticationError  no
    httpx.HTTPStatusError 502/503/504,
      ConnectionError, socket.gaierror, OSError with
      ENETUNREACH / EHOSTUNREACH / ENETDOWN,
      httpx.NetworkError, httpx.RemoteProtocolError    NetworkError         yes
    other httpx.HTTPError                              NetworkError         only if the message
                                                                            looks transient
    ValueError, TypeError                              ValidationError      no
    RuntimeError                                       ConfigurationError   no
    anything else                                      UnknownError         no

Unknown failures default to non-retryable so unfamiliar failure modes do not
turn into retry storms.
"""

from __future__ import annotations

import asyncio
import errno
import socket
from typing import Optional, Tuple

import httpx

from hlpai_sdk.core.errors import AiOperationError, ErrorKind

_RETRYABLE_HTTP_STATUS = frozenset({502, 503, 504})
_AUTH_HTTP_STATUS = frozenset({401, 403})
_UNREACHABLE_ERRNOS = frozenset({errno.ENETUNREACH, errno.EHOSTUNREACH, errno.ENETDOWN})

_TRANSIENT_TRANSPORT_PATTERNS: Tuple[str, ...] = (
    "timeout",
    "connection reset",
    "connection refused",
    "network",
    "502",
    "503",
    "504",
)


def classify_exception(
    exc: BaseException,
    *,
    operation_name: str,
    provider_name: str,
) -> AiOperationError:
    """
    Classify `exc` into an AiOperationError.

    Errors that are already classified are returned unchanged. Otherwise a new
    AiOperationError is built with `exc` as its `__cause__`; the input is
    never mutated.
    """
    if isinstance(exc, AiOperationError):
        return exc

    kind, retryable, message = _match(exc, operation_name, provider_name)
    err = AiOperationError(
        message,
        kind=kind,
        retryable=retryable,
        details={"exception_type": type(exc).__name__},
    )
    err.__cause__ = exc
    return err


def is_retryable(exc: BaseException) -> bool:
    """Shortcut for callers that only need the retry decision."""
    return classify_exception(exc, operation_name="", provider_name="").retryable


def _match(
    exc: BaseException,
    operation_name: str,
    provider_name: str,
) -> Tuple[ErrorKind, bool, str]:
    if isinstance(exc, (httpx.TimeoutException, TimeoutError, asyncio.CancelledError)):
        return ErrorKind.TIMEOUT, True, f"Operation {operation_name} timed out"

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status in _AUTH_HTTP_STATUS:
            return (
                ErrorKind.AUTHENTICATION_ERROR,
                False,
                f"Authentication failed for {provider_name}",
            )
        return (
            ErrorKind.NETWORK_ERROR,
            status in _RETRYABLE_HTTP_STATUS,
            f"HTTP error in {operation_name}: {exc}",
        )

    if isinstance(exc, PermissionError):
        return ErrorKind.AUTHENTICATION_ERROR, False, f"Authentication failed for {provider_name}"

    if isinstance(
        exc,
        (ConnectionError, socket.gaierror, httpx.NetworkError, httpx.RemoteProtocolError),
    ):
        return ErrorKind.NETWORK_ERROR, True, f"HTTP error in {operation_name}: {exc}"

    if isinstance(exc, OSError) and exc.errno in _UNREACHABLE_ERRNOS:
        return ErrorKind.NETWORK_ERROR, True, f"HTTP error in {operation_name}: {exc}"

    if isinstance(exc, httpx.HTTPError):
        return (
            ErrorKind.NETWORK_ERROR,
            _looks_transient(str(exc)),
            f"HTTP error in {operation_name}: {exc}",
        )

    if isinstance(exc, (ValueError, TypeError)):
        return ErrorKind.VALIDATION_ERROR, False, f"Invalid argument in {operation_name}: {exc}"

    if isinstance(exc, RuntimeError):
        return ErrorKind.CONFIGURATION_ERROR, False, f"Invalid operation {operation_name}: {exc}"

    return ErrorKind.UNKNOWN_ERROR, False, f"Unexpected error in {operation_name}: {exc}"


def _looks_transient(message: str) -> bool:
    return _first_match(message.lower(), _TRANSIENT_TRANSPORT_PATTERNS) is not None


def _first_match(haystack: str, patterns: Tuple[str, ...]) -> Optional[str]:
    for pattern in patterns:
        if pattern in haystack:
            return pattern
    return None


__all__ = [
    "classify_exception",
    "is_retryable",
]
