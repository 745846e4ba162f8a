"""Shared utilities and infrastructure.

This module contains common utilities used throughout the application.
"""

from __future__ import annotations

from latmon.utils.backoff import ExponentialBackoff, RetryPolicy
from latmon.utils.exceptions import (
    ApiError,
    ConfigurationError,
    LatmonError,
    MalformedResponseError,
    NetworkError,
    ProtocolError,
    RetriesExhaustedError,
    ValidationError,
)
from latmon.utils.logging_config import get_logger, setup_logging
from latmon.utils.time import Clock

__all__ = [
    "ApiError",
    "Clock",
    "ConfigurationError",
    "ExponentialBackoff",
    "LatmonError",
    "MalformedResponseError",
    "NetworkError",
    "ProtocolError",
    "RetriesExhaustedError",
    "RetryPolicy",
    "ValidationError",
    "get_logger",
    "setup_logging",
]
