from __future__ import annotations

from fastapi import APIRouter, Depends

from throttle.adapters.rate_limit.limiter import RateLimiter
from throttle.core.rate_limit import get_rate_limiter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(limiter: RateLimiter = Depends(get_rate_limiter)) -> dict:
    """Health check endpoint.

    Reports which counter backend the limiter routes to first. A ``remote``
    backend still falls back to local counting when the store is unreachable.

    Returns:
        dict: ``status`` and ``rate_limit_backend``.
    """

    return {"status": "ok", "rate_limit_backend": limiter.backend}
