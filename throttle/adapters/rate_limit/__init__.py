"""Rate limiting adapters.

A process-local fixed-window counter, an optional shared counter behind a
REST key/value service, and the limiter that routes between them.
"""

from throttle.adapters.rate_limit.base import (
    AI_RATE_LIMIT,
    API_RATE_LIMIT,
    RateLimitPolicy,
    RateLimitResult,
)
from throttle.adapters.rate_limit.in_memory import LocalCounterStore
from throttle.adapters.rate_limit.limiter import RateLimiter
from throttle.adapters.rate_limit.remote import RemoteCounterStore
from throttle.adapters.rate_limit.response import (
    RejectionPayload,
    add_rate_limit_headers,
    build_exceeded_response,
)

__all__ = [
    "AI_RATE_LIMIT",
    "API_RATE_LIMIT",
    "LocalCounterStore",
    "RateLimitPolicy",
    "RateLimitResult",
    "RateLimiter",
    "RejectionPayload",
    "RemoteCounterStore",
    "add_rate_limit_headers",
    "build_exceeded_response",
]
