"""Rate limiter orchestrating the remote and local counter stores.

Routing is decided on every call from configuration alone: with a remote
store configured it is tried first, and any ``RemoteFailure`` sends that one
call to the local store. Failures are not remembered, so the next call tries
the remote store again.
"""

from __future__ import annotations

import logging

from throttle.adapters.rate_limit.base import (
    AI_RATE_LIMIT,
    AbstractCounterStore,
    RateLimitPolicy,
    RateLimitResult,
)
from throttle.adapters.rate_limit.in_memory import LocalCounterStore
from throttle.adapters.rate_limit.remote import (
    RemoteCounterStore,
    RemoteFailure,
    RemoteSuccess,
)
from throttle.core.config import RateLimitSettings
from throttle.core.logging import hash_identity

logger = logging.getLogger(__name__)


class RateLimiter:
    """Entry point used by request handlers to check a caller's quota."""

    def __init__(
        self,
        local_store: AbstractCounterStore,
        remote_store: RemoteCounterStore | None = None,
    ) -> None:
        self._local = local_store
        self._remote = remote_store

    @classmethod
    def from_settings(cls, rate_limit_settings: RateLimitSettings) -> "RateLimiter":
        """Build a limiter whose remote store exists only when fully configured.

        Args:
            rate_limit_settings: Counter store settings.

        Returns:
            RateLimiter owning a fresh local store.
        """
        local_store = LocalCounterStore(max_entries=rate_limit_settings.local_max_entries)

        remote_store = None
        if rate_limit_settings.remote_enabled:
            remote_store = RemoteCounterStore(
                url=rate_limit_settings.remote_url,
                token=rate_limit_settings.remote_token,
                timeout_seconds=rate_limit_settings.remote_timeout_seconds,
            )

        logger.info(
            "rate_limit.configured",
            extra={
                "backend": "remote" if remote_store else "local",
                "local_max_entries": rate_limit_settings.local_max_entries,
            },
        )
        return cls(local_store, remote_store)

    @property
    def backend(self) -> str:
        return "remote" if self._remote is not None else "local"

    @property
    def local_store(self) -> AbstractCounterStore:
        return self._local

    async def check_rate_limit(
        self, identity: str, policy: RateLimitPolicy = AI_RATE_LIMIT
    ) -> RateLimitResult:
        """Count one request for ``identity`` and return the decision.

        Never raises for backend problems: a failing remote store degrades to
        the local store for this call.

        Args:
            identity: Caller identity resolved by the auth layer.
            policy: Quota to enforce.

        Returns:
            RateLimitResult for this request.

        Raises:
            ValueError: If identity is empty.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")

        if self._remote is None:
            return self._local.check_and_increment(identity, policy)

        outcome = await self._remote.check_and_increment(identity, policy)
        if isinstance(outcome, RemoteSuccess):
            return outcome.result

        return self._fallback(identity, policy, outcome)

    def _fallback(
        self, identity: str, policy: RateLimitPolicy, failure: RemoteFailure
    ) -> RateLimitResult:
        logger.warning(
            "rate_limit.remote_fallback",
            extra={
                "reason": failure.reason,
                "error_detail": failure.detail,
                "namespace": policy.namespace,
                "identity_hash": hash_identity(identity),
            },
        )
        return self._local.check_and_increment(identity, policy)
