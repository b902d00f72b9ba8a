from __future__ import annotations

from ytgrab.api.routes.admin import router as admin_router
from ytgrab.api.routes.health import router as health_router
from ytgrab.api.routes.media import router as media_router
from ytgrab.api.routes.status import router as status_router

__all__ = ["admin_router", "health_router", "media_router", "status_router"]
