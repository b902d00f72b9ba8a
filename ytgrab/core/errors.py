"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    reason: str
    remaining_minutes: int
    blocked_until: str
    retry_after: int
    http_status: int
    backend: str
    url: str
    scope: str
    limit: int
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


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class NotFoundAppError(AppError):
    """Raised when an addressed resource (e.g. a blocked client) is absent."""


@dataclass
class TooManyRequestsAppError(AppError):
    """Raised when the abuse governor rejects a request.

    Attributes:
        headers: Extra response headers (e.g. Retry-After).
    """

    headers: dict[str, str] | None = None


class DownloaderAppError(AppError):
    """Raised when the media download backend fails."""
