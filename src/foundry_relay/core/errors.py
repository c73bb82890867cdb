"""Exception types and provider failure classification."""

from __future__ import annotations

import email.utils
import logging
import re
import socket
import time
from collections.abc import Mapping
from enum import Enum
from typing import Any

import httpx
import openai

from ..config import AuthMode

LOGGER = logging.getLogger(__name__)


class AdapterError(RuntimeError):
    """Raised when an adapter cannot fulfil a request."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class MalformedChunkError(AdapterError):
    """Raised by normalizers for a stream chunk that cannot be interpreted."""


class ErrorKind(str, Enum):
    """Stable taxonomy for provider failures surfaced to callers."""

    AUTH = "auth"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


_RETRYABLE_KINDS = frozenset({ErrorKind.RATE_LIMITED, ErrorKind.NETWORK})


class ClassifiedError(AdapterError):
    """A provider or setup failure mapped onto :class:`ErrorKind`.

    ``message`` is the human-actionable remediation text. ``retry_after`` is
    the delay in seconds the provider asked for, when it sent one.
    """

    def __init__(
        self,
        kind: ErrorKind | str,
        message: str,
        *,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.status_code = status_code
        self.retry_after = retry_after

    @property
    def retryable(self) -> bool:
        return self.kind in _RETRYABLE_KINDS

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r}, "
            f"status_code={self.status_code!r})"
        )


_NETWORK_TYPES: tuple[type[BaseException], ...] = (
    openai.APIConnectionError,
    httpx.TransportError,
    ConnectionError,
    socket.gaierror,
)

_NETWORK_MARKERS = (
    "econnrefused",
    "enotfound",
    "connection refused",
    "connection error",
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "network",
)

_UNIX_TIMESTAMP_FLOOR = 1_000_000_000


def classify_error(
    error: BaseException,
    *,
    auth_mode: AuthMode | None = None,
    deployment_id: str | None = None,
) -> ClassifiedError:
    """Map a raw transport or provider error onto the error taxonomy.

    The status code is inspected first, then the message text. Errors that
    are already classified are returned unchanged.
    """

    if isinstance(error, ClassifiedError):
        return error

    message = _error_message(error)
    status = _status_code(error)
    retry_after = _retry_after_seconds(error)

    kind = _kind_from_status(status)
    if kind is None:
        kind = _kind_from_message(message)
    if kind is None and isinstance(error, _NETWORK_TYPES):
        kind = ErrorKind.NETWORK
    if kind is None and _mentions_network_failure(message):
        kind = ErrorKind.NETWORK

    if kind is ErrorKind.AUTH:
        text = _auth_remediation(auth_mode)
    elif kind is ErrorKind.AUTHORIZATION:
        text = (
            "Insufficient permissions. Ensure your account has the 'Cognitive Services User' "
            "role assigned for this resource."
        )
    elif kind is ErrorKind.NOT_FOUND:
        text = _not_found_remediation(error, message, deployment_id)
    elif kind is ErrorKind.RATE_LIMITED:
        text = (
            "Rate limit exceeded. Wait a moment and try again, or request a quota increase "
            "for your Azure OpenAI resource."
        )
    elif kind is ErrorKind.NETWORK:
        text = (
            "Unable to reach the Microsoft Foundry endpoint. Check your network connectivity "
            "and verify the endpoint URL is correct."
        )
    else:
        kind = ErrorKind.UNKNOWN
        text = f"Microsoft Foundry error: {message}"

    LOGGER.debug("classified %s (status=%s) as %s", type(error).__name__, status, kind.value)
    return ClassifiedError(kind, text, status_code=status, retry_after=retry_after)


def _kind_from_status(status: int | None) -> ErrorKind | None:
    if status == 401:
        return ErrorKind.AUTH
    if status == 403:
        return ErrorKind.AUTHORIZATION
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 429:
        return ErrorKind.RATE_LIMITED
    return None


def _kind_from_message(message: str) -> ErrorKind | None:
    if _has_code(message, "401") or "Unauthorized" in message:
        return ErrorKind.AUTH
    if _has_code(message, "403") or "Forbidden" in message:
        return ErrorKind.AUTHORIZATION
    if _has_code(message, "404") or "Not Found" in message:
        return ErrorKind.NOT_FOUND
    if _has_code(message, "429") or "Too Many Requests" in message:
        return ErrorKind.RATE_LIMITED
    return None


def _has_code(message: str, code: str) -> bool:
    return re.search(rf"(?<!\d){code}(?!\d)", message) is not None


def _mentions_network_failure(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _NETWORK_MARKERS)


def _auth_remediation(auth_mode: AuthMode | None) -> str:
    if auth_mode is AuthMode.IDENTITY:
        return (
            "Azure CLI session expired or not authenticated. Run `az login` to re-authenticate, "
            "then try again."
        )
    return "Invalid API key. Verify that your Microsoft Foundry API key is correct."


def _not_found_remediation(error: BaseException, message: str, deployment_id: str | None) -> str:
    code = getattr(error, "code", None)
    hinted = "deployment" in message.lower() or (isinstance(code, str) and "Deployment" in code)
    if not hinted:
        return "Resource not found. Verify the endpoint URL is correct."
    return (
        f"Deployment '{deployment_id or ''}' not found. Verify that:\n"
        "1. The deployment exists in your Azure AI Foundry project\n"
        "2. The deployment name is spelled correctly\n"
        "3. The model has been deployed (not just available in the catalog)"
    )


def _error_message(error: BaseException) -> str:
    message = str(error)
    if message:
        return message
    return type(error).__name__


def _status_code(error: BaseException) -> int | None:
    for attribute in ("status_code", "status"):
        value = getattr(error, attribute, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value

    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _retry_after_seconds(error: BaseException) -> float | None:
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if headers is None:
        headers = getattr(error, "headers", None)
    if not isinstance(headers, (Mapping, httpx.Headers)):
        return None

    raw_ms = _header(headers, "retry-after-ms")
    if raw_ms is not None:
        try:
            return max(0.0, float(raw_ms) / 1000)
        except ValueError:
            pass

    for name in ("retry-after", "x-ratelimit-reset", "ratelimit-reset"):
        raw = _header(headers, name)
        if raw is not None:
            return _parse_retry_after(raw)
    return None


def _header(headers: Any, name: str) -> str | None:
    value = headers.get(name)
    if value is None and isinstance(headers, Mapping):
        for key, candidate in headers.items():
            if isinstance(key, str) and key.lower() == name:
                value = candidate
                break
    if value is None:
        return None
    return str(value).strip() or None


def _parse_retry_after(raw: str) -> float | None:
    try:
        seconds = float(raw)
    except ValueError:
        try:
            moment = email.utils.parsedate_to_datetime(raw)
        except (TypeError, ValueError):
            return None
        return max(0.0, moment.timestamp() - time.time())

    if seconds >= _UNIX_TIMESTAMP_FLOOR:
        return max(0.0, seconds - time.time())
    return max(0.0, seconds)


__all__ = [
    "AdapterError",
    "ClassifiedError",
    "ErrorKind",
    "MalformedChunkError",
    "classify_error",
]
