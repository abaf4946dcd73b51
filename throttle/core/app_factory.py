"""Application factory for FastAPI app.

Centralizes app construction (logging, limiter, middleware, handlers,
routers) so tests can build isolated instances with their own limiter.
"""

from __future__ import annotations

from fastapi import FastAPI

from throttle.adapters.rate_limit.limiter import RateLimiter
from throttle.api.routes import health_router
from throttle.core.config import settings
from throttle.core.exception_handlers import setup_exception_handlers
from throttle.core.logging import configure_logging
from throttle.core.middleware import request_id_middleware


def create_app(limiter: RateLimiter | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        limiter: Limiter to own; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so the limiter's configuration event is formatted
    configure_logging(settings.log)

    app = FastAPI(
        title="Journal Throttle API",
        description=(
            "Request throttling for the photo-journal backend: fixed-window "
            "quotas per caller identity, shared across instances through a "
            "REST key/value store with local fallback."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    app.state.rate_limiter = limiter or RateLimiter.from_settings(settings.rate_limit)

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)
    app.include_router(health_router)

    return app
