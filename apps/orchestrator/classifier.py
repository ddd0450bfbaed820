"""Pure decisions about outbound responses: valid, or worth a fallback."""

from __future__ import annotations

import errno
import json
import socket
from collections.abc import Mapping
from typing import Any, Iterable

import httpx

from devlab.core.errors import (
    AuthenticationError,
    CredentialError,
    NetworkError,
    ParseError,
    RequestValidationError,
)

NETWORK_ERROR_CODES = {"ECONNREFUSED", "ETIMEDOUT", "ENOTFOUND", "EAI_AGAIN"}
NETWORK_ERRNOS = {errno.ECONNREFUSED, errno.ETIMEDOUT}
MALFORMED_MARKERS = ("json", "parse", "malformed")
TIMEOUT_MARKERS = ("timeout", "timed out")


def _is_success(status: int) -> bool:
    return 200 <= status < 300


def _status_code_of(response: Any) -> int | None:
    status = getattr(response, "status_code", None)
    if status is None and isinstance(response, Mapping):
        status = response.get("status_code", response.get("status"))
    if isinstance(status, bool) or not isinstance(status, int):
        return None
    return status


def _body_of(response: Any) -> Any:
    if isinstance(response, httpx.Response):
        try:
            return response.json()
        except ValueError:
            return None
    return response


def is_valid_response(response: Any, expected_keys: Iterable[str] | None = None) -> bool:
    """Return True when ``response`` is present, 2xx and carries ``expected_keys``."""

    if response is None:
        return False
    status = _status_code_of(response)
    if status is not None and not _is_success(status):
        return False
    if expected_keys:
        body = _body_of(response)
        if not isinstance(body, Mapping):
            return False
        return all(key in body for key in expected_keys)
    return True


def _http_status_of_error(error: BaseException) -> int | None:
    response = getattr(error, "response", None)
    if response is not None:
        status = getattr(response, "status_code", None)
        if isinstance(status, int):
            return status
    status = getattr(error, "status_code", None)
    return status if isinstance(status, int) and not isinstance(status, bool) else None


def _is_network_error(error: BaseException) -> bool:
    if isinstance(error, (NetworkError, httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(error, (ConnectionRefusedError, TimeoutError, socket.gaierror)):
        return True
    code = getattr(error, "code", None)
    if isinstance(code, str) and code.upper() in NETWORK_ERROR_CODES:
        return True
    if getattr(error, "errno", None) in NETWORK_ERRNOS:
        return True
    message = str(error).lower()
    return any(marker in message for marker in TIMEOUT_MARKERS)


def _is_malformed_data_error(error: BaseException) -> bool:
    if isinstance(error, (ParseError, json.JSONDecodeError)):
        return True
    message = str(error).lower()
    return any(marker in message for marker in MALFORMED_MARKERS)


def should_fallback(error: BaseException | None) -> bool:
    """Decide whether ``error`` is a dependency outage rather than a bug.

    Network failures, non-2xx HTTP responses, unusable credentials and
    malformed payloads qualify. Anything else (and explicit authentication or
    validation failures) must propagate to the caller.
    """

    if error is None:
        return False
    if isinstance(error, (AuthenticationError, RequestValidationError)):
        return False
    if isinstance(error, CredentialError):
        return True
    if _is_network_error(error):
        return True
    status = _http_status_of_error(error)
    if status is not None and not _is_success(status):
        return True
    return _is_malformed_data_error(error)


def describe_failure(error: BaseException) -> str:
    """Short operator-facing reason used in fallback notes."""

    if isinstance(error, CredentialError):
        return f"invalid credential ({error})"
    if _is_network_error(error):
        return f"network error ({type(error).__name__})"
    status = _http_status_of_error(error)
    if status is not None:
        return f"HTTP {status}"
    if _is_malformed_data_error(error):
        return "malformed response"
    return type(error).__name__


__all__ = ["describe_failure", "is_valid_response", "should_fallback"]
