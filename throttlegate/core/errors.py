"""Application-level exception types.

This module defines domain errors used across the limiter, adapters and
routes, enabling consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context returned to clients under ``error.details``."""

    actual_value: Any


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


RATE_LIMIT_ERROR = "Too many requests"
RATE_LIMIT_CODE = "RATE_LIMIT_EXCEEDED"


@dataclass
class RateLimitExceededError(AppError):
    """Raised by a limiter when the caller has used up its window.

    Attributes:
        retry_after: Seconds until the window resets.
        reset_time: ISO-8601 timestamp of the window reset.
        headers: Rate limit headers to attach to the 429 response.
    """

    retry_after: int = 0
    reset_time: str = ""
    headers: dict[str, str] = field(default_factory=dict)
