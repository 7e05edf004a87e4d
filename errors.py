"""Error taxonomy and classification for completion backends.

Every failure a caller can observe is a :class:`CompletionError` carrying one
:class:`ErrorKind`. The streaming and single-shot paths both classify through
:func:`classify_status` and :func:`classify_exception`, so a given backend
outcome always maps to the same kind.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx


class ErrorKind(str, Enum):
    """Closed set of failure categories surfaced to callers."""

    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    HTTP_ERROR = "http_error"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    INVALID_RESPONSE = "invalid_response"
    EMPTY_RESPONSE = "empty_response"
    CONFIGURATION_ERROR = "configuration_error"


# Status codes returned by the HTTP surface for each kind.
HTTP_STATUS_BY_KIND = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.HTTP_ERROR: 502,
    ErrorKind.NETWORK_ERROR: 502,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.INVALID_RESPONSE: 502,
    ErrorKind.EMPTY_RESPONSE: 502,
    ErrorKind.CONFIGURATION_ERROR: 503,
}


@dataclass
class CompletionError(Exception):
    """Backend failure with its classified kind.

    ``status_code`` is the upstream HTTP status when one was received.
    """

    kind: ErrorKind
    detail: str
    status_code: Optional[int] = None

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.detail}"

    @property
    def http_status(self) -> int:
        """Status code to use when reporting this error over HTTP."""
        return HTTP_STATUS_BY_KIND[self.kind]

    @classmethod
    def unauthorized(cls) -> "CompletionError":
        return cls(ErrorKind.UNAUTHORIZED, "API key is invalid or unauthorized (401)", 401)

    @classmethod
    def rate_limited(cls) -> "CompletionError":
        return cls(ErrorKind.RATE_LIMITED, "Rate limit exceeded or quota exhausted (429)", 429)

    @classmethod
    def http_error(cls, status_code: int) -> "CompletionError":
        return cls(ErrorKind.HTTP_ERROR, f"HTTP error: {status_code}", status_code)

    @classmethod
    def network_error(cls, cause: str) -> "CompletionError":
        return cls(ErrorKind.NETWORK_ERROR, f"Network error: {cause}")

    @classmethod
    def timeout(cls) -> "CompletionError":
        return cls(ErrorKind.TIMEOUT, "Request timed out")

    @classmethod
    def invalid_response(cls, reason: str = "") -> "CompletionError":
        detail = "Invalid response from server"
        return cls(ErrorKind.INVALID_RESPONSE, f"{detail}: {reason}" if reason else detail)

    @classmethod
    def empty_response(cls) -> "CompletionError":
        return cls(ErrorKind.EMPTY_RESPONSE, "Server returned no content")

    @classmethod
    def configuration_error(cls, message: str) -> "CompletionError":
        return cls(ErrorKind.CONFIGURATION_ERROR, message)


def classify_status(status_code: int) -> Optional[CompletionError]:
    """Map an HTTP status to an error, or None when the call may proceed."""
    if 200 <= status_code <= 299:
        return None
    if status_code == 401:
        return CompletionError.unauthorized()
    if status_code == 429:
        return CompletionError.rate_limited()
    return CompletionError.http_error(status_code)


def classify_exception(exc: Exception) -> CompletionError:
    """Map a connection-level failure to an error."""
    if isinstance(exc, CompletionError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return CompletionError.timeout()
    if isinstance(exc, httpx.InvalidURL):
        return CompletionError.configuration_error(f"Backend endpoint is not a valid URL: {exc}")
    if isinstance(exc, httpx.UnsupportedProtocol):
        return CompletionError.configuration_error(
            f"Backend endpoint must use http or https: {exc}"
        )
    cause = str(exc) or type(exc).__name__
    return CompletionError.network_error(cause)


__all__ = [
    "CompletionError",
    "ErrorKind",
    "HTTP_STATUS_BY_KIND",
    "classify_exception",
    "classify_status",
]
