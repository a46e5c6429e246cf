# SPDX-License-Identifier: Apache-2.0
"""
Middleware — Exception classification.

Covers:
  • Transport failures (reset/refused/DNS/unreachable, httpx connect errors, 502/503/504) → NetworkError, retryable
  • Other HTTP failures → NetworkError, retryable only when the message looks transient
  • Timeouts and operation-raised cancellation → Timeout, retryable
  • Auth / bad input / invalid state → non-retryable kinds
  • Unmatched errors default to UnknownError, non-retryable
  • Already-classified errors pass through unchanged
"""

import asyncio
import errno
import socket

import httpx
import pytest

from hlpai_sdk.core.errors import AiOperationError, ErrorKind
from hlpai_sdk.middleware.classifier import classify_exception, is_retryable

URL = "http://localhost:11434/api/generate"


def _classify(exc):
    return classify_exception(exc, operation_name="Generate", provider_name="Ollama")


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", URL)
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"status {status}", request=request, response=response)


@pytest.mark.parametrize(
    "exc",
    [
        ConnectionResetError("connection reset by peer"),
        ConnectionRefusedError("connection refused"),
        socket.gaierror("name resolution failed"),
        OSError(errno.ENETUNREACH, "Network is unreachable"),
        OSError(errno.EHOSTUNREACH, "No route to host"),
        httpx.ConnectError("connect failed"),
        httpx.ReadError("read failed"),
        httpx.RemoteProtocolError("server disconnected"),
        _status_error(502),
        _status_error(503),
        _status_error(504),
    ],
)
def test_transport_failures_are_retryable_network_errors(exc):
    err = _classify(exc)
    assert err.kind is ErrorKind.NETWORK_ERROR, f"{type(exc).__name__} should be NetworkError"
    assert err.retryable is True, f"{type(exc).__name__} should be retryable"
    assert err.message.startswith("HTTP error in Generate"), "message should name the operation"


@pytest.mark.parametrize("status", [500, 418])
def test_other_http_status_errors_are_not_retryable(status):
    err = _classify(_status_error(status))
    assert err.kind is ErrorKind.NETWORK_ERROR
    assert err.retryable is False, f"HTTP {status} must not be retried"


def test_transport_error_message_patterns_decide_retryability():
    transient = _classify(httpx.UnsupportedProtocol("network is unreachable"))
    permanent = _classify(httpx.UnsupportedProtocol("request URL has an unsupported scheme"))
    assert transient.kind is permanent.kind is ErrorKind.NETWORK_ERROR
    assert transient.retryable is True, "'network' in the message marks a transient failure"
    assert permanent.retryable is False


@pytest.mark.parametrize(
    "exc",
    [
        TimeoutError(),
        asyncio.TimeoutError(),
        httpx.ReadTimeout("read timed out"),
        httpx.ConnectTimeout("connect timed out"),
        asyncio.CancelledError(),
    ],
)
def test_timeouts_and_cancellation_are_retryable_timeouts(exc):
    err = _classify(exc)
    assert err.kind is ErrorKind.TIMEOUT, f"{type(exc).__name__} should be Timeout"
    assert err.retryable is True
    assert err.message == "Operation Generate timed out"


@pytest.mark.parametrize("exc", [PermissionError("denied"), _status_error(401), _status_error(403)])
def test_auth_failures_are_never_retryable(exc):
    err = _classify(exc)
    assert err.kind is ErrorKind.AUTHENTICATION_ERROR
    assert err.retryable is False
    assert err.message == "Authentication failed for Ollama"


@pytest.mark.parametrize("exc", [ValueError("bad temperature"), TypeError("prompt must be str")])
def test_bad_input_is_validation_error(exc):
    err = _classify(exc)
    assert err.kind is ErrorKind.VALIDATION_ERROR
    assert err.retryable is False
    assert err.message.startswith("Invalid argument in Generate")


def test_invalid_state_is_configuration_error():
    err = _classify(RuntimeError("client not initialised"))
    assert err.kind is ErrorKind.CONFIGURATION_ERROR
    assert err.retryable is False
    assert "client not initialised" in err.message


@pytest.mark.parametrize(
    "exc", [KeyError("response"), ZeroDivisionError(), Exception("boom"), OSError(errno.EIO, "I/O error")]
)
def test_unmatched_errors_default_to_unknown_and_not_retryable(exc):
    err = _classify(exc)
    assert err.kind is ErrorKind.UNKNOWN_ERROR
    assert err.retryable is False, "unknown failures must not be retried"
    assert err.message.startswith("Unexpected error in Generate")


def test_classified_errors_pass_through_unchanged():
    original = AiOperationError(
        "quota gone", kind=ErrorKind.INSUFFICIENT_QUOTA, retryable=True
    )
    assert _classify(original) is original, "carried errors keep their own kind and flag"
    assert original.retryable is True


def test_classification_wraps_without_mutating_input():
    exc = ConnectionResetError("reset")
    err = _classify(exc)
    assert err.cause is exc, "the raw exception is kept as the cause"
    assert exc.__cause__ is None, "input exception must not be mutated"
    assert err.details["exception_type"] == "ConnectionResetError"


def test_classification_is_deterministic():
    exc = httpx.ConnectError("connect failed")
    first, second = _classify(exc), _classify(exc)
    assert (first.kind, first.retryable, first.message) == (
        second.kind,
        second.retryable,
        second.message,
    )


def test_is_retryable_shortcut():
    assert is_retryable(ConnectionResetError()) is True
    assert is_retryable(ValueError()) is False
    assert is_retryable(Exception()) is False


def test_non_retryable_kinds_cannot_be_marked_retryable():
    for kind in (
        ErrorKind.VALIDATION_ERROR,
        ErrorKind.AUTHENTICATION_ERROR,
        ErrorKind.CONFIGURATION_ERROR,
    ):
        err = AiOperationError("x", kind=kind, retryable=True)
        assert err.retryable is False, f"{kind.value} is never retryable"
