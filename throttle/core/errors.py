"""Application-level exception types.

Only genuine failures are exceptions here. A remote store outage is reported
as a value by the remote adapter and never raised; an exhausted quota is a
normal ``RateLimitResult`` and is turned into ``RateLimitExceededError`` only
at the HTTP boundary so the exception handler can render the 429 response.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypedDict

if TYPE_CHECKING:
    from throttle.adapters.rate_limit.base import RateLimitPolicy, RateLimitResult


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: int
    request_id: str
    context: dict[str, Any]


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


@dataclass
class RateLimitExceededError(AppError):
    """Raised by the HTTP dependency when a caller has exhausted its quota."""

    code: str = "rate_limit_exceeded"
    message: str = "Too many requests. Please try again later."
    result: "RateLimitResult | None" = field(default=None, kw_only=True)
    policy: "RateLimitPolicy | None" = field(default=None, kw_only=True)
