"""Global exception handlers for consistent error responses.

Design:
- RateLimitExceededError → 429 rendered by build_exceeded_response
- Other AppError subclasses → 400 with the standard error envelope
- Unexpected Exception → generic 500 (safety net)
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from throttle.adapters.rate_limit.base import RateLimitResult
from throttle.adapters.rate_limit.response import build_exceeded_response
from throttle.core.errors import AppError, RateLimitExceededError
from throttle.core.logging import get_request_id

logger = logging.getLogger(__name__)


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceededError
) -> JSONResponse:
    """Render a throttled request as 429 Too Many Requests.

    Args:
        request: FastAPI request object.
        exc: Error carrying the rejected decision and its policy.

    Returns:
        JSONResponse with ``error``/``retryAfter`` body and quota headers.
    """
    # A bare error without a decision still means "retry later".
    result = exc.result or RateLimitResult(allowed=False, remaining=0, reset_in_ms=60_000)
    return build_exceeded_response(result, exc.policy).to_response()


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with status 400 and error details.
    """
    status_code = 400

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(RateLimitExceededError)(rate_limit_exceeded_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
