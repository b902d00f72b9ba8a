from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so tests
can build isolated instances with their own governor and download backend.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from ytgrab.adapters.downloader.base import AbstractDownloader
from ytgrab.adapters.downloader.factory import create_downloader
from ytgrab.adapters.governor.base import AbstractAbuseGovernor
from ytgrab.adapters.governor.in_memory import InMemoryAbuseGovernor
from ytgrab.adapters.rate_limit.base import AbstractRateLimiter
from ytgrab.api.routes import admin_router, health_router, media_router, status_router
from ytgrab.core.config import AppSettings, GovernorSettings, settings
from ytgrab.core.exception_handlers import setup_exception_handlers
from ytgrab.core.logging import configure_logging
from ytgrab.core.middleware import request_id_middleware
from ytgrab.core.openapi import apply_openapi_customizations
from ytgrab.core.rate_limit import build_rate_limiters
from ytgrab.services.janitor import GovernorJanitor

logger = logging.getLogger(__name__)


def build_governor(governor_settings: GovernorSettings | None = None) -> InMemoryAbuseGovernor:
    """Build the in-memory governor from configuration."""
    cfg = governor_settings or settings.governor
    return InMemoryAbuseGovernor(
        max_clicks=cfg.max_clicks,
        time_window_seconds=cfg.time_window_seconds,
        block_duration_seconds=cfg.block_duration_seconds,
    )


def resolve_cors_origins(app_settings: AppSettings, app_env: str) -> list[str]:
    """Origins allowed by CORS.

    ``APP_CORS_ORIGINS`` wins when set. Otherwise any origin is allowed,
    except in production where no CORS headers are sent at all.
    """
    configured = [o.strip() for o in (app_settings.cors_origins or "").split(",") if o.strip()]
    if configured:
        return configured
    if app_env == "production":
        return []
    return ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    janitor: GovernorJanitor = app.state.janitor
    janitor.start()
    logger.info(
        "app.startup",
        extra={
            "governor_enabled": settings.governor.enabled,
            "max_clicks": settings.governor.max_clicks,
            "time_window_s": settings.governor.time_window_seconds,
            "block_duration_s": settings.governor.block_duration_seconds,
            "downloader": getattr(app.state.downloader, "name", "unknown"),
        },
    )
    try:
        yield
    finally:
        await janitor.stop()


def create_app(
    *,
    governor: AbstractAbuseGovernor | None = None,
    downloader: AbstractDownloader | None = None,
    rate_limiters: dict[str, AbstractRateLimiter] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        governor: Governor to use; built from settings when omitted.
        downloader: Download backend; selected by DOWNLOADER_BACKEND when omitted.
        rate_limiters: Per-route limiters keyed by scope; built from RATE_LIMIT_*
            settings when omitted.

    Returns:
        Configured FastAPI app with state, middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="YTGrab API",
        description=(
            "Back-end for a YouTube metadata and download front-end. Media "
            "routes sit behind an IP-based abuse governor: clients exceeding "
            "the click limit inside the window are blocked for a while. "
            "The governor is best-effort spam protection, not a security "
            "boundary. Admin routes require X-Admin-Key."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    # Explicitly owned state shared by routes and the janitor
    app.state.governor = governor or build_governor(settings.governor)
    app.state.rate_limiters = rate_limiters or build_rate_limiters(settings.rate_limit)
    app.state.downloader = downloader or create_downloader(settings.downloader)
    app.state.janitor = GovernorJanitor(
        app.state.governor,
        interval_seconds=settings.governor.cleanup_interval_seconds,
        rate_limiters=app.state.rate_limiters.values(),
        downloader=app.state.downloader,
        scratch_max_age_seconds=settings.downloader.scratch_max_age_seconds,
    )
    app.state.started_at = time.monotonic()

    # Middleware; CORS is added last so it wraps the request id middleware
    app.middleware("http")(request_id_middleware)
    origins = resolve_cors_origins(settings.app, settings.app_env)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=["Content-Type", "X-Admin-Key", settings.log.request_id_header],
            expose_headers=["Content-Disposition", "Retry-After", settings.log.request_id_header],
        )

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(media_router)
    app.include_router(status_router)
    app.include_router(admin_router)
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
