"""Fixed-window counter backed by an Upstash-style REST key/value service.

Each check is a short sequence of bearer-authenticated calls:

1. ``POST {url}/incr/{key}``: atomic increment, so concurrent instances
   never lose updates for the same identity.
2. ``POST {url}/expire/{key}/{seconds}``: only when the increment created
   the key (result == 1).
3. ``GET {url}/ttl/{key}``: remaining lifetime, reported as ``reset_in_ms``.

Every response must be 2xx JSON carrying an integer ``result``. Any other
outcome, including timeouts, is reported as a ``RemoteFailure`` value; this
module never raises to its caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from throttle.adapters.rate_limit.base import RateLimitPolicy, RateLimitResult

logger = logging.getLogger(__name__)

KEY_PREFIX = "ratelimit"

# Redis TTL reply for a key that exists but has no expiry set.
_TTL_NO_EXPIRY = -1


@dataclass(frozen=True)
class RemoteSuccess:
    result: RateLimitResult


@dataclass(frozen=True)
class RemoteFailure:
    """Why the remote store could not produce a decision.

    Attributes:
        reason: Short machine-readable cause (e.g. ``timeout``, ``http_status``).
        detail: Human-readable context for logs.
    """

    reason: str
    detail: str = ""


RemoteOutcome = RemoteSuccess | RemoteFailure


class _RemoteCallError(Exception):
    """Internal signal that one protocol step failed."""

    def __init__(self, reason: str, detail: str) -> None:
        super().__init__(detail)
        self.reason = reason
        self.detail = detail


class RemoteCounterStore:
    """Shared fixed-window counter reached over HTTP.

    No connection is kept between checks; each call opens its own client so
    the store is safe to share across requests and event loops.
    """

    def __init__(
        self,
        *,
        url: str,
        token: str,
        timeout_seconds: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the remote store.

        Args:
            url: Base URL of the REST endpoint.
            token: Bearer token for the endpoint.
            timeout_seconds: Timeout applied to every call.
            transport: Optional httpx transport (tests inject a mock).

        Raises:
            ValueError: If url or token are empty, the url is not an absolute
                http(s) URL, or the timeout is invalid.
        """
        if not url or not token:
            raise ValueError("url and token are required")
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as exc:
            raise ValueError(f"invalid remote url: {exc}") from exc
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ValueError("remote url must be an absolute http(s) URL")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        self._url = url.rstrip("/")
        self._token = token
        self._timeout = timeout_seconds
        self._transport = transport

    @staticmethod
    def build_key(identity: str, policy: RateLimitPolicy) -> str:
        return f"{KEY_PREFIX}:{policy.key_for(identity)}"

    async def _command(self, client: httpx.AsyncClient, method: str, path: str) -> int:
        """Issue one REST command and return its integer ``result``.

        Raises:
            _RemoteCallError: On transport errors, non-2xx replies or bad payloads.
        """
        command = path.lstrip("/").split("/", 1)[0].upper()
        try:
            response = await client.request(method, path)
        except httpx.TimeoutException as exc:
            raise _RemoteCallError("timeout", f"{command}: {exc}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise _RemoteCallError("network", f"{command}: {exc}") from exc

        if not response.is_success:
            raise _RemoteCallError(
                "http_status", f"{command}: status {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise _RemoteCallError("malformed_payload", f"{command}: not JSON") from exc

        result = payload.get("result") if isinstance(payload, dict) else None
        # bool is an int subclass but never a valid reply here
        if not isinstance(result, int) or isinstance(result, bool):
            raise _RemoteCallError(
                "malformed_payload", f"{command}: unexpected result {result!r}"
            )
        return result

    async def check_and_increment(
        self, identity: str, policy: RateLimitPolicy
    ) -> RemoteOutcome:
        """Count one request remotely.

        Args:
            identity: Caller identity.
            policy: Quota and window to enforce.

        Returns:
            RemoteSuccess with the decision, or RemoteFailure describing why
            no decision could be made.
        """
        key = quote(self.build_key(identity, policy), safe="")
        window = policy.remote_window_seconds

        try:
            async with httpx.AsyncClient(
                base_url=self._url,
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                count = await self._command(client, "POST", f"/incr/{key}")
                if count == 1:
                    await self._command(client, "POST", f"/expire/{key}/{window}")

                ttl = await self._command(client, "GET", f"/ttl/{key}")
                if ttl == _TTL_NO_EXPIRY:
                    # An earlier EXPIRE was lost; without this the key never resets.
                    await self._command(client, "POST", f"/expire/{key}/{window}")
                    ttl = window
                elif ttl <= 0:
                    ttl = window
        except httpx.InvalidURL as exc:
            return RemoteFailure(reason="config", detail=f"client setup: {exc}")
        except _RemoteCallError as exc:
            logger.debug(
                "rate_limit.remote_command_failed",
                extra={"reason": exc.reason, "namespace": policy.namespace},
            )
            return RemoteFailure(reason=exc.reason, detail=exc.detail)

        reset_in_ms = ttl * 1000
        if count > policy.max_requests:
            return RemoteSuccess(RateLimitResult(allowed=False, remaining=0, reset_in_ms=reset_in_ms))

        return RemoteSuccess(
            RateLimitResult(
                allowed=True,
                remaining=policy.max_requests - count,
                reset_in_ms=reset_in_ms,
            )
        )
