"""Application-level exception types.

Domain errors raised by dependencies and routes. The global handlers in
``app.core.exception_handlers`` translate them into the JSON error envelope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context returned to clients."""

    hint: str
    scope: str
    limit: int
    remaining: int
    reset_at_epoch_ms: int
    retry_after: int
    context: dict[str, Any]


@dataclass
class AppError(Exception):
    """Base error for application failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for clients and logs.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    status_code = 400

    def __post_init__(self) -> None:
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input or configuration validation fails."""


class AuthenticationAppError(AppError):
    """Raised when a caller fails service key authentication."""

    status_code = 403


@dataclass
class RateLimitedAppError(AppError):
    """Raised when a rate limiter denies a request.

    Attributes:
        headers: Response headers (Retry-After, X-RateLimit-*) to attach.
    """

    headers: dict[str, str] = field(default_factory=dict)

    status_code = 429


class UnprocessableInputAppError(ValidationAppError):
    """Raised when a well-formed request carries a semantically invalid value."""

    status_code = 422
