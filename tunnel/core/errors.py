"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    url: str
    error_type: str
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
    """Raised when input/config validation fails."""


class RelayAppError(AppError):
    """Raised inside the relay when an outbound fetch cannot complete.

    The relay converts these into a 500 envelope; they never reach the
    HTTP layer.
    """


class InvalidRequestError(RelayAppError):
    """The target URL cannot be turned into an outbound request."""


class TransportFailureError(RelayAppError):
    """The outbound call failed before response headers were received."""


class BodyReadFailureError(RelayAppError):
    """Response headers arrived but reading the body failed."""
