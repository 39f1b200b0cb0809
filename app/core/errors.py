"""Application-level failure and exception types.

Classified outcomes (validation, conflict, rate limit) are plain values
returned by the validators, the service and the admission check. They carry
their HTTP status and classification label so the error boundary can render
them without knowing where they came from.

Exceptions are reserved for failures crossing adapter boundaries. Anything
that is not a ``Failure`` value ends up as a generic 500 at the boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability."""

    email: str
    constraint: str
    url: str
    status_code: int
    context: NotRequired[dict[str, Any]]


@dataclass(frozen=True)
class Failure:
    """Classified outcome that maps to a non-2xx response.

    Attributes:
        message: Public message, a single string or a list of violations.
        status_code: HTTP status to respond with.
        error: Short classification label (the HTTP reason phrase).
    """

    message: str | list[str]
    status_code: int = 400
    error: str = "Bad Request"

    @classmethod
    def from_status(cls, status_code: int, message: str | list[str]) -> "Failure":
        """Build a failure labelled with the standard reason phrase."""
        try:
            label = HTTPStatus(status_code).phrase
        except ValueError:
            label = "Error"
        return cls(message=message, status_code=status_code, error=label)

    @property
    def headers(self) -> dict[str, str]:
        """Extra response headers for this failure (none by default)."""
        return {}


@dataclass(frozen=True)
class ValidationFailure(Failure):
    """Malformed, missing or unexpected fields in a request payload."""

    message: list[str] = field(default_factory=list)
    status_code: int = 400
    error: str = "Bad Request"


@dataclass(frozen=True)
class ConflictFailure(Failure):
    """A unique key (email) is already taken."""

    status_code: int = 409
    error: str = "Conflict"

    @classmethod
    def for_email(cls, email: str) -> "ConflictFailure":
        return cls(message=f"User with email {email} already exists")


@dataclass(frozen=True)
class RateLimitFailure(Failure):
    """Admission denied by the per-route rate limiter.

    Attributes:
        limit: Max requests per window for the route.
        remaining: Remaining budget (0 when blocked).
        reset_at: UNIX epoch seconds when the budget is fully restored.
        retry_after_seconds: Suggested wait before retrying.
        include_headers: Whether to expose Retry-After / X-RateLimit-* headers.
    """

    message: str = "Rate limit exceeded. Try again later."
    status_code: int = 429
    error: str = "Too Many Requests"
    limit: int = 0
    remaining: int = 0
    reset_at: int = 0
    retry_after_seconds: int = 0
    include_headers: bool = True

    @property
    def headers(self) -> dict[str, str]:
        if not self.include_headers:
            return {}
        return {
            "Retry-After": str(self.retry_after_seconds),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


@dataclass
class AppError(Exception):
    """Base error for failures raised across adapter boundaries.

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


class DuplicateEmailError(AppError):
    """Raised by storage when the unique email constraint rejects a write."""


class ExternalServiceError(AppError):
    """Raised when the external users directory cannot be read."""
