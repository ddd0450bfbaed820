import errno
import json
import socket

import httpx
import pytest

from apps.orchestrator.classifier import describe_failure, is_valid_response, should_fallback
from devlab.core.errors import (
    AuthenticationError,
    CredentialError,
    NetworkError,
    ParseError,
    RequestValidationError,
)


class _CodedError(Exception):
    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.code = code


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://service.test/api")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


def test_missing_response_is_invalid() -> None:
    assert is_valid_response(None) is False


@pytest.mark.parametrize("status", [199, 301, 404, 429, 500, 503])
def test_non_2xx_response_is_invalid(status: int) -> None:
    assert is_valid_response(httpx.Response(status, json={"questions": []})) is False


def test_2xx_response_with_expected_keys_is_valid() -> None:
    response = httpx.Response(200, json={"questions": [], "success": True})
    assert is_valid_response(response, ["questions", "success"]) is True


def test_missing_expected_key_is_invalid() -> None:
    response = httpx.Response(200, json={"questions": []})
    assert is_valid_response(response, ["questions", "success"]) is False


def test_non_json_body_fails_key_check() -> None:
    response = httpx.Response(200, text="<html>maintenance</html>")
    assert is_valid_response(response, ["questions"]) is False
    assert is_valid_response(response) is True


def test_plain_mapping_bodies_are_checked_directly() -> None:
    assert is_valid_response({"hints": ["a", "b", "c"]}, ["hints"]) is True
    assert is_valid_response({"status_code": 502, "hints": []}, ["hints"]) is False


@pytest.mark.parametrize(
    "error",
    [
        _CodedError("connect ECONNREFUSED 127.0.0.1:3001", "ECONNREFUSED"),
        _CodedError("connect ETIMEDOUT", "ETIMEDOUT"),
        _CodedError("getaddrinfo ENOTFOUND assessment.internal", "ENOTFOUND"),
        ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused"),
        socket.gaierror(socket.EAI_NONAME, "Name or service not known"),
        OSError(errno.ETIMEDOUT, "Operation timed out"),
        httpx.ConnectError("connection failed"),
        httpx.ReadTimeout("read timed out"),
        RuntimeError("upstream timeout of 5000ms exceeded"),
        NetworkError("Service URL for rag is not configured"),
    ],
)
def test_network_failures_fall_back(error: BaseException) -> None:
    assert should_fallback(error) is True


@pytest.mark.parametrize("status", [199, 302, 400, 404, 429, 500, 503])
def test_http_status_errors_fall_back(status: int) -> None:
    assert should_fallback(_status_error(status)) is True


@pytest.mark.parametrize(
    "error",
    [
        ValueError("Unexpected token < in JSON at position 0"),
        RuntimeError("Failed to parse question response"),
        RuntimeError("Malformed payload from assessment"),
        ParseError("Could not extract valid JSON"),
        json.JSONDecodeError("Expecting value", "", 0),
    ],
)
def test_malformed_data_falls_back(error: BaseException) -> None:
    assert should_fallback(error) is True


def test_credential_problems_fall_back() -> None:
    assert should_fallback(CredentialError("Invalid generative API key: placeholder detected")) is True


@pytest.mark.parametrize(
    "error",
    [
        TypeError("'NoneType' object is not subscriptable"),
        KeyError("lesson_id"),
        AttributeError("object has no attribute 'questions'"),
        AuthenticationError("Code sandbox authentication failed", status_code=401),
        RequestValidationError("Unsupported programming language: cobol"),
    ],
)
def test_programmer_and_fatal_errors_propagate(error: BaseException) -> None:
    assert should_fallback(error) is False


def test_none_is_not_a_fallback_reason() -> None:
    assert should_fallback(None) is False


def test_describe_failure_names_the_category() -> None:
    assert describe_failure(_status_error(503)) == "HTTP 503"
    assert describe_failure(httpx.ConnectError("boom")) == "network error (ConnectError)"
    assert describe_failure(ParseError("bad json")) == "malformed response"
    assert describe_failure(CredentialError("missing")).startswith("invalid credential")
