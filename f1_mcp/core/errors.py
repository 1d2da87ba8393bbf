"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and protocol responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep shapes stable while letting each error
    attach only what it knows.
    """

    code: str
    message: str
    hint: str
    http_status: int
    url: str
    retry_after: float
    limit: int
    tool: str
    field: str
    errors: list[dict[str, Any]]
    request_id: str
    context: NotRequired[dict[str, Any]]


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
    """Raised when request arguments or configuration are invalid."""


class MissingClientIdAppError(ValidationAppError):
    """Raised when a request carries no client identity."""


class RateLimitAppError(AppError):
    """Raised when a client exceeds its request quota for the current window."""


class UpstreamAppError(AppError):
    """Raised when an upstream data provider call fails (transport or status)."""


class MalformedPayloadAppError(AppError):
    """Raised when an upstream payload lacks the shape an operation expects."""
