"""In-memory fixed-window counter store.

Notes:
- Per-process only: with N instances the effective quota is N x max_requests.
- Thread-safe: the lookup, reset and increment run under one lock.
- Expired entries are swept lazily once the map grows past ``max_entries``.
- The sweep scans the whole map under the lock. If the map stays above
  ``max_entries`` with every entry still live, each check pays that O(n) scan;
  size ``max_entries`` above the expected number of active identities.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from throttle.adapters.rate_limit.base import (
    AbstractCounterStore,
    RateLimitPolicy,
    RateLimitResult,
)

DEFAULT_MAX_ENTRIES = 10_000


@dataclass
class CounterEntry:
    count: int
    reset_at: float


class LocalCounterStore(AbstractCounterStore):
    """Fixed-window counter keyed by ``(namespace, identity)``.

    A window starts at the first request seen for a key and lasts
    ``policy.window_seconds``; the first request after ``reset_at`` starts a
    new window. Blocked requests do not increment the count.
    """

    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the store.

        Args:
            max_entries: Map size above which expired entries are swept.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If max_entries is invalid.
        """
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[tuple[str, str], CounterEntry] = {}

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _evict_expired(self, now: float) -> None:
        # Caller holds the lock.
        if len(self._entries) <= self._max_entries:
            return
        expired = [key for key, entry in self._entries.items() if now > entry.reset_at]
        for key in expired:
            del self._entries[key]

    def check_and_increment(self, identity: str, policy: RateLimitPolicy) -> RateLimitResult:
        """Count one request and decide whether it is allowed.

        Args:
            identity: Caller identity.
            policy: Quota and window to enforce.

        Returns:
            RateLimitResult for this request.

        Raises:
            ValueError: If identity is empty.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")

        key = (policy.namespace, identity)

        with self._lock:
            now = self._clock()
            self._evict_expired(now)

            entry = self._entries.get(key)
            if entry is None or now > entry.reset_at:
                self._entries[key] = CounterEntry(
                    count=1, reset_at=now + policy.window_seconds
                )
                return RateLimitResult(
                    allowed=True,
                    remaining=policy.max_requests - 1,
                    reset_in_ms=policy.window_ms,
                )

            reset_in_ms = max(0, int(math.ceil((entry.reset_at - now) * 1000)))

            if entry.count >= policy.max_requests:
                return RateLimitResult(allowed=False, remaining=0, reset_in_ms=reset_in_ms)

            entry.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=policy.max_requests - entry.count,
                reset_in_ms=reset_in_ms,
            )
