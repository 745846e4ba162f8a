"""Exception hierarchy for latmon.

Every error raised by the client, the poller or the configuration layer
derives from :class:`LatmonError` so callers can catch the whole family.
"""

from __future__ import annotations

import asyncio
from typing import Any


class LatmonError(Exception):
    """Base exception for all latmon errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize latmon error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class NetworkError(LatmonError):
    """Transport-level errors talking to the data API."""


class ApiError(NetworkError):
    """The data API answered with a non-success status."""

    def __init__(
        self,
        message: str,
        status: int,
        details: dict[str, Any] | None = None,
    ):
        """Initialize API error with the HTTP status."""
        super().__init__(message, {"status": status, **(details or {})})
        self.status = status


class RetriesExhaustedError(NetworkError):
    """A request kept failing until the retry policy gave up."""


class ProtocolError(LatmonError):
    """Response payload errors."""


class MalformedResponseError(ProtocolError):
    """Response body could not be decoded or lacks required fields."""


class ValidationError(LatmonError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation errors."""


# Failures the poller treats as transient and retries.
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    NetworkError,
    ProtocolError,
    asyncio.TimeoutError,
)
