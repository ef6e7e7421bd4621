"""
Error taxonomy for mapleads.

Transport failures are raised by the API client and recorded by the
stores; they are never raised out of the session facade. Validation
errors are raised before any network call is made.
"""

from __future__ import annotations

from pathlib import Path


class MapleadsError(Exception):
    """Base exception for all mapleads errors."""


# =============================================================================
# Transport Errors
# =============================================================================


class TransportError(MapleadsError):
    """Base exception for failures talking to the scraper API."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        url: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.url = url
        self.cause = cause


class NetworkError(TransportError):
    """No response was received (connection refused, reset, timed out)."""
    pass


class HttpError(TransportError):
    """The API answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status: int,
        operation: str | None = None,
        url: str | None = None,
    ):
        super().__init__(message, operation=operation, url=url)
        self.status = status

    @property
    def not_found(self) -> bool:
        return self.status == 404


class DecodeError(TransportError):
    """The response body could not be decoded into the expected shape."""
    pass


# =============================================================================
# Input and Configuration Errors
# =============================================================================


class ValidationError(MapleadsError):
    """Required user input is missing or malformed."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ConfigError(MapleadsError):
    """Configuration loading or validation error."""

    def __init__(self, message: str, path: Path | None = None, details: str | None = None):
        self.path = path
        self.details = details
        super().__init__(message)


def describe_error(error: BaseException) -> str:
    """Render an error as the one-line description stored in state."""
    if isinstance(error, HttpError):
        return f"HTTP {error.status}: {error}"
    message = str(error)
    return message or error.__class__.__name__
