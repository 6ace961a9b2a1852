from __future__ import annotations

from throttlegate.api.routes.auth import router as auth_router
from throttlegate.api.routes.health import router as health_router
from throttlegate.api.routes.intake import router as intake_router

__all__ = ["auth_router", "health_router", "intake_router"]
