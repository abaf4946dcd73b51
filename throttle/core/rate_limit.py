"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiter into the HTTP layer.

Design goals:
- Routes declare the policy they need: ``Depends(require_rate_limit(AI_RATE_LIMIT))``.
- The limiter instance is owned by the app (``app.state.rate_limiter``), not
  by this module.
- Rejections are raised as ``RateLimitExceededError`` and rendered by the
  global exception handler.

Identity resolution:
- The auth layer in front of this service sets the identity header
  (``APP_IDENTITY_HEADER``, default ``X-User-ID``).
- Without it, the client IP is used.

Usage:

    from fastapi import APIRouter, Depends

    from throttle.adapters.rate_limit.base import AI_RATE_LIMIT
    from throttle.core.app_factory import create_app
    from throttle.core.rate_limit import require_rate_limit

    router = APIRouter()

    @router.post(
        "/entries/{entry_id}/insights",
        dependencies=[Depends(require_rate_limit(AI_RATE_LIMIT))],
    )
    async def generate_insights(entry_id: str) -> dict:
        ...

    app = create_app()
    app.include_router(router)

Allowed responses carry the ``X-RateLimit-*`` headers. A rejected request
never reaches the handler; it gets the 429 body built by
``build_exceeded_response``.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import Request, Response

from throttle.adapters.rate_limit.base import RateLimitPolicy, RateLimitResult
from throttle.adapters.rate_limit.limiter import RateLimiter
from throttle.adapters.rate_limit.response import add_rate_limit_headers
from throttle.core.config import settings
from throttle.core.errors import RateLimitExceededError
from throttle.core.logging import hash_identity

logger = logging.getLogger(__name__)


def get_rate_limiter(request: Request) -> RateLimiter:
    """Return the limiter owned by the running application."""

    return request.app.state.rate_limiter


def resolve_identity(request: Request) -> tuple[str, str]:
    """Pick the identity to count requests against.

    Args:
        request: FastAPI request.

    Returns:
        Tuple of (identity, identity_type) where identity_type is ``user`` or ``ip``.
    """

    user_id = request.headers.get(settings.app.identity_header)
    if user_id:
        return user_id, "user"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}", "ip"


def require_rate_limit(
    policy: RateLimitPolicy,
) -> Callable[[Request, Response], Awaitable[RateLimitResult | None]]:
    """Build a dependency enforcing ``policy`` on the decorated route.

    Args:
        policy: Quota for the protected operation.

    Returns:
        Async FastAPI dependency returning the decision (None when disabled).
    """

    async def enforce_rate_limit(request: Request, response: Response) -> RateLimitResult | None:
        if not settings.app.rate_limit_enabled:
            return None

        limiter = get_rate_limiter(request)
        identity, identity_type = resolve_identity(request)
        log_fields = {
            "identity_type": identity_type,
            "identity_hash": hash_identity(identity),
            "namespace": policy.namespace,
            "limit": policy.max_requests,
            "window_s": policy.window_seconds,
        }

        result = await limiter.check_rate_limit(identity, policy)
        if result.allowed:
            logger.info(
                "rate_limit.allowed",
                extra={**log_fields, "remaining": result.remaining},
            )
            if settings.app.rate_limit_include_headers:
                add_rate_limit_headers(response, result, policy)
            return result

        logger.warning(
            "rate_limit.exceeded",
            extra={**log_fields, "retry_after_s": result.reset_in_seconds},
        )
        raise RateLimitExceededError(result=result, policy=policy)

    return enforce_rate_limit
