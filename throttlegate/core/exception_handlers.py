"""Global exception handlers for consistent error responses.

Design:
- RateLimitExceededError → 429 with the throttle body and rate limit headers
- Other AppError subclasses → 400 (client fault)
- Unexpected Exception → generic 500 (safety net, nothing leaked)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from throttlegate.core.errors import RATE_LIMIT_ERROR, AppError, RateLimitExceededError
from throttlegate.core.logging import get_request_id
from throttlegate.core.rate_limit import apply_rate_limit_headers

logger = logging.getLogger(__name__)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """Render a throttled request as HTTP 429.

    The body shape is part of the public contract::

        {"error": "Too many requests", "code": "RATE_LIMIT_EXCEEDED",
         "message": "...", "retryAfter": 120, "resetTime": "...Z"}
    """
    return JSONResponse(
        status_code=429,
        content={
            "error": RATE_LIMIT_ERROR,
            "code": exc.code,
            "message": exc.message,
            "retryAfter": exc.retry_after,
            "resetTime": exc.reset_time,
        },
        headers=exc.headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses include ``error.code``, ``error.message`` and
    ``error.request_id``; ``error.details`` only when present.
    """
    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": 400,
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

    return JSONResponse(status_code=400, content={"error": error_content})


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the failure for debugging while returning a generic message, so no
    stack traces or exception text reach the client.
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

    response = JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )
    # Rendered outside the request-id middleware
    return apply_rate_limit_headers(request, response)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Handlers are resolved by exception class, so the 429 handler takes
    precedence over the generic AppError handler for throttled requests.
    """
    app.exception_handler(RateLimitExceededError)(rate_limit_exceeded_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
