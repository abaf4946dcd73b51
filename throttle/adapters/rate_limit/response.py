"""HTTP rendering of rate limit decisions.

Rejections always map to ``429 Too Many Requests`` with a JSON body
``{"error": <message>, "retryAfter": <seconds>}`` and the standard quota
headers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from fastapi import Response, status
from fastapi.responses import JSONResponse

from throttle.adapters.rate_limit.base import RateLimitPolicy, RateLimitResult


@dataclass(frozen=True)
class RejectionPayload:
    """Transport-ready description of a throttled request."""

    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    status_code: int = status.HTTP_429_TOO_MANY_REQUESTS

    def to_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content=self.body,
            headers=self.headers,
        )


def _retry_message(reset_in_ms: int) -> str:
    minutes = max(1, int(math.ceil(reset_in_ms / 60_000)))
    unit = "minute" if minutes == 1 else "minutes"
    return f"Rate limit exceeded. Try again in {minutes} {unit}."


def build_exceeded_response(
    result: RateLimitResult, policy: RateLimitPolicy | None = None
) -> RejectionPayload:
    """Describe the 429 response for a rejected result.

    Args:
        result: The rejected decision.
        policy: Policy that produced it; adds ``X-RateLimit-Limit`` when given.

    Returns:
        RejectionPayload with message, retry hint and quota headers.
    """
    retry_after = result.reset_in_seconds

    headers: dict[str, str] = {}
    if policy is not None:
        headers["X-RateLimit-Limit"] = str(policy.max_requests)
    headers["X-RateLimit-Remaining"] = "0"
    headers["X-RateLimit-Reset"] = str(retry_after)
    headers["Retry-After"] = str(retry_after)

    return RejectionPayload(
        body={"error": _retry_message(result.reset_in_ms), "retryAfter": retry_after},
        headers=headers,
    )


def add_rate_limit_headers(
    response: Response, result: RateLimitResult, policy: RateLimitPolicy
) -> Response:
    """Stamp quota headers on an allowed response."""
    response.headers["X-RateLimit-Limit"] = str(policy.max_requests)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Reset"] = str(result.reset_in_seconds)
    return response
