"""Typed errors raised by the client.

Every error is a direct subclass of :class:`OramaError` and carries a
``kind`` tag, so callers can either ``except`` a specific class or match on
``err.kind``.
"""

from typing import ClassVar

import httpx


class OramaError(Exception):
    """Base class for all client errors."""

    kind: ClassVar[str] = "generic"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthError(OramaError):
    """Credential invalid, token exchange failed or request rejected twice."""

    kind = "auth"

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ApiError(OramaError):
    """API error with status code."""

    kind = "api"

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status

    def __str__(self) -> str:
        return f"API error (status {self.status}): {self.message}"


class TransportError(OramaError):
    """Connection, TLS or protocol failure below the HTTP layer."""

    kind = "transport"


class TransportTimeoutError(OramaError):
    """A request or stream read exceeded its timeout."""

    kind = "timeout"


class DecodeError(OramaError):
    """A response body or stream frame could not be parsed."""

    kind = "decode"


class ConfigError(OramaError):
    """The client is missing configuration needed for a request."""

    kind = "config"


class SessionError(OramaError):
    """An AI session operation was used in an invalid state."""

    kind = "session"


def from_transport(exc: httpx.RequestError) -> OramaError:
    """Map an httpx request exception onto the client's error types."""
    if isinstance(exc, httpx.TimeoutException):
        return TransportTimeoutError(f"request timed out: {exc}")
    if isinstance(exc, httpx.DecodingError):
        return DecodeError(f"undecodable response body: {exc}")
    return TransportError(f"transport failure: {exc}")


def extract_error_message(response: httpx.Response) -> str:
    """Extract error message from API response."""
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        message = data.get("message", data.get("error"))
        if message:
            return str(message)
    return response.text or f"HTTP {response.status_code}"
