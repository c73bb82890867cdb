from __future__ import annotations

import socket
import time
from email.utils import formatdate
from types import SimpleNamespace

import httpx
import pytest

from foundry_relay.config import AuthMode
from foundry_relay.core.errors import AdapterError, ClassifiedError, ErrorKind, classify_error

from tests.fixtures import openai_fake


def test_classified_error_is_adapter_error() -> None:
    error = ClassifiedError("rate_limited", "slow down", status_code=429, retry_after=2.0)

    assert isinstance(error, AdapterError)
    assert error.kind is ErrorKind.RATE_LIMITED
    assert error.retryable
    assert str(error) == "slow down"
    assert "rate_limited" in repr(error)


@pytest.mark.parametrize(
    "kind, retryable",
    [
        (ErrorKind.AUTH, False),
        (ErrorKind.AUTHORIZATION, False),
        (ErrorKind.NOT_FOUND, False),
        (ErrorKind.RATE_LIMITED, True),
        (ErrorKind.NETWORK, True),
        (ErrorKind.CONFIGURATION, False),
        (ErrorKind.UNKNOWN, False),
    ],
)
def test_only_transient_kinds_are_retryable(kind: ErrorKind, retryable: bool) -> None:
    assert ClassifiedError(kind, "x").retryable is retryable


def test_already_classified_errors_pass_through() -> None:
    original = ClassifiedError(ErrorKind.CONFIGURATION, "missing endpoint")
    assert classify_error(original) is original


def test_401_with_identity_suggests_az_login() -> None:
    classified = classify_error(openai_fake.status_error(401, "Unauthorized"), auth_mode=AuthMode.IDENTITY)

    assert classified.kind is ErrorKind.AUTH
    assert classified.status_code == 401
    assert "az login" in classified.message
    assert not classified.retryable


def test_401_with_api_key_suggests_checking_key() -> None:
    classified = classify_error(openai_fake.status_error(401), auth_mode=AuthMode.API_KEY)

    assert classified.kind is ErrorKind.AUTH
    assert "API key" in classified.message
    assert "az login" not in classified.message


def test_403_mentions_role_assignment() -> None:
    classified = classify_error(openai_fake.status_error(403, "Forbidden"))

    assert classified.kind is ErrorKind.AUTHORIZATION
    assert "Cognitive Services User" in classified.message


def test_deployment_not_found_names_the_deployment() -> None:
    error = openai_fake.status_error(
        404,
        "Error code: 404 - {'error': {'code': 'DeploymentNotFound'}}",
        code="DeploymentNotFound",
    )

    classified = classify_error(error, deployment_id="gpt-4o-prod")

    assert classified.kind is ErrorKind.NOT_FOUND
    assert "Deployment 'gpt-4o-prod' not found" in classified.message
    assert "1. The deployment exists" in classified.message


def test_deployment_hint_from_error_code_alone() -> None:
    error = openai_fake.status_error(404, "Resource missing", code="DeploymentNotFound")

    classified = classify_error(error, deployment_id="o1")

    assert "Deployment 'o1' not found" in classified.message


def test_plain_404_points_at_the_endpoint() -> None:
    classified = classify_error(openai_fake.status_error(404, "Resource not found"))

    assert classified.kind is ErrorKind.NOT_FOUND
    assert "endpoint URL" in classified.message


def test_429_is_rate_limited_with_retry_after() -> None:
    error = openai_fake.status_error(429, "Too Many Requests", headers={"retry-after": "7"})

    classified = classify_error(error)

    assert classified.kind is ErrorKind.RATE_LIMITED
    assert classified.retryable
    assert classified.retry_after == pytest.approx(7.0)
    assert "quota increase" in classified.message


def test_retry_after_ms_takes_precedence() -> None:
    error = openai_fake.status_error(429, headers={"retry-after-ms": "1500", "retry-after": "9"})

    assert classify_error(error).retry_after == pytest.approx(1.5)


def test_retry_after_http_date_and_unix_timestamp() -> None:
    future = time.time() + 30
    dated = openai_fake.status_error(429, headers={"retry-after": formatdate(future, usegmt=True)})
    stamped = openai_fake.status_error(429, headers={"x-ratelimit-reset": str(int(future))})

    assert 0 < classify_error(dated).retry_after <= 30
    assert 0 < classify_error(stamped).retry_after <= 30


def test_unparseable_retry_after_is_ignored() -> None:
    error = openai_fake.status_error(429, headers={"retry-after": "soon"})

    assert classify_error(error).retry_after is None


@pytest.mark.parametrize(
    "message, kind",
    [
        ("Request failed with status 401", ErrorKind.AUTH),
        ("403 Forbidden", ErrorKind.AUTHORIZATION),
        ("Not Found", ErrorKind.NOT_FOUND),
        ("HTTP 429 Too Many Requests", ErrorKind.RATE_LIMITED),
    ],
)
def test_message_substrings_classify_without_status(message: str, kind: ErrorKind) -> None:
    assert classify_error(RuntimeError(message)).kind is kind


def test_status_attribute_variants_are_read() -> None:
    error = RuntimeError("boom")
    error.status = 403  # type: ignore[attr-defined]
    assert classify_error(error).kind is ErrorKind.AUTHORIZATION

    wrapped = RuntimeError("boom")
    wrapped.response = SimpleNamespace(status_code=429, headers={})  # type: ignore[attr-defined]
    assert classify_error(wrapped).kind is ErrorKind.RATE_LIMITED


def test_numbers_inside_larger_numbers_do_not_match() -> None:
    assert classify_error(RuntimeError("took 14010 ms")).kind is ErrorKind.UNKNOWN


@pytest.mark.parametrize(
    "error",
    [
        openai_fake.connection_error(),
        httpx.ConnectError("connect failed"),
        ConnectionRefusedError("refused"),
        socket.gaierror("getaddrinfo failed"),
        RuntimeError("connect ECONNREFUSED 10.0.0.1:443"),
        RuntimeError("getaddrinfo ENOTFOUND example.invalid"),
        RuntimeError("network is unreachable"),
    ],
)
def test_connection_failures_are_network(error: BaseException) -> None:
    classified = classify_error(error)

    assert classified.kind is ErrorKind.NETWORK
    assert classified.retryable
    assert "network connectivity" in classified.message


def test_everything_else_is_unknown_with_raw_message() -> None:
    classified = classify_error(ValueError("model produced something odd"))

    assert classified.kind is ErrorKind.UNKNOWN
    assert classified.message == "Microsoft Foundry error: model produced something odd"
    assert not classified.retryable


def test_empty_message_falls_back_to_type_name() -> None:
    assert classify_error(KeyError()).message == "Microsoft Foundry error: KeyError"
