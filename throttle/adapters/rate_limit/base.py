"""Rate limiting value types and the counter store interface.

Callers depend on these types only; whether a decision came from the local
or the remote counter is invisible to them.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitPolicy:
    """Fixed-window quota for one category of protected operation.

    Attributes:
        max_requests: Requests allowed per window.
        window_seconds: Length of the window in seconds.
        namespace: Prefix separating this quota pool from others sharing a store.
    """

    max_requests: int
    window_seconds: float
    namespace: str = "rl"

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if not (math.isfinite(self.window_seconds) and self.window_seconds > 0):
            raise ValueError("window_seconds must be a finite number > 0")
        if not self.namespace:
            raise ValueError("namespace must be a non-empty string")

    @property
    def window_ms(self) -> int:
        return int(math.ceil(self.window_seconds * 1000))

    @property
    def remote_window_seconds(self) -> int:
        """Window rounded up to whole seconds, as EXPIRE only takes integers."""
        return max(1, int(math.ceil(self.window_seconds)))

    def key_for(self, identity: str) -> str:
        return f"{self.namespace}:{identity}"


# Tight quota for the AI recap call, looser one for general API traffic.
AI_RATE_LIMIT = RateLimitPolicy(max_requests=10, window_seconds=60 * 60, namespace="ai")
API_RATE_LIMIT = RateLimitPolicy(max_requests=100, window_seconds=60, namespace="api")


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        remaining: Requests left in the current window (0 when blocked).
        reset_in_ms: Milliseconds until the current window resets.
    """

    allowed: bool
    remaining: int
    reset_in_ms: int

    @property
    def reset_in_seconds(self) -> int:
        return int(math.ceil(self.reset_in_ms / 1000))


class AbstractCounterStore(ABC):
    """Interface for synchronous fixed-window counter stores."""

    @abstractmethod
    def check_and_increment(self, identity: str, policy: RateLimitPolicy) -> RateLimitResult:
        """Count one request for ``identity`` under ``policy``.

        Args:
            identity: Caller identity (user id, client IP, ...).
            policy: Quota to enforce; its namespace scopes the counter.

        Returns:
            RateLimitResult describing whether the request is allowed.
        """
        raise NotImplementedError
