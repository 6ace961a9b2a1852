"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from throttlegate.api.routes import auth_router, health_router, intake_router
from throttlegate.core.config import settings
from throttlegate.core.exception_handlers import setup_exception_handlers
from throttlegate.core.logging import configure_logging
from throttlegate.core.middleware import request_id_middleware


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Throttlegate",
        description=(
            "Registration, verification-email and support/sales intake endpoints "
            "protected by fixed-window rate limits. Limited responses carry "
            "X-RateLimit-Limit, X-RateLimit-Remaining and X-RateLimit-Reset; "
            "throttled requests get HTTP 429 with Retry-After."
        ),
        version="0.1.0",
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(intake_router)
    app.include_router(health_router)

    return app
