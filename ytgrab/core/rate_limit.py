"""Per-route request limits for the /api surface.

Three fixed-window budgets are kept per client: one shared by every /api
route and one each for /api/info and /api/download. They run before the
abuse governor, so a client that only bursts is slowed down here without
being counted towards a block.

The limiters are built by the app factory and live on
``app.state.rate_limiters``.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from fastapi import Request

from ytgrab.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from ytgrab.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from ytgrab.core.client_key import resolve_client_key
from ytgrab.core.config import RateLimitSettings, settings
from ytgrab.core.errors import TooManyRequestsAppError
from ytgrab.core.logging import hash_client_key

logger = logging.getLogger(__name__)

SCOPE_API = "api"
SCOPE_INFO = "info"
SCOPE_DOWNLOAD = "download"

_MESSAGES = {
    SCOPE_API: "Too many requests. Please wait a moment and try again.",
    SCOPE_INFO: "Too many video info requests. Please slow down.",
    SCOPE_DOWNLOAD: "Download limit reached. Please wait before downloading more videos.",
}


def build_rate_limiters(
    rate_limit_settings: RateLimitSettings | None = None,
    *,
    clock: Callable[[], float] = time.time,
) -> dict[str, AbstractRateLimiter]:
    """Build one limiter per scope from configuration."""
    cfg = rate_limit_settings or settings.rate_limit
    limits = {
        SCOPE_API: cfg.api_requests,
        SCOPE_INFO: cfg.info_requests,
        SCOPE_DOWNLOAD: cfg.download_requests,
    }
    return {
        scope: InMemoryFixedWindowRateLimiter(
            limit=limit,
            window_seconds=cfg.window_seconds,
            name=scope,
            clock=clock,
        )
        for scope, limit in limits.items()
    }


def build_rate_limit_error(
    scope: str, result: RateLimitResult, *, include_headers: bool
) -> TooManyRequestsAppError:
    retry_after = result.retry_after_seconds or 1
    headers: dict[str, str] | None = None
    if include_headers:
        headers = {
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_at),
        }

    return TooManyRequestsAppError(
        code="request_rate_limited",
        message=_MESSAGES.get(scope, _MESSAGES[SCOPE_API]),
        details={
            "reason": "route-limit",
            "scope": scope,
            "limit": result.limit,
            "retry_after": retry_after,
        },
        headers=headers,
    )


def limit_requests(*scopes: str):
    """Return a dependency that consumes one unit from each scope's budget.

    Scopes are checked in order and the first exhausted one rejects the
    request with 429 ``request_rate_limited``.

    Usage:
        @router.get("/info", dependencies=[Depends(limit_requests("api", "info"))])
    """

    async def enforce_rate_limit(request: Request) -> None:
        if not settings.rate_limit.enabled:
            return

        limiters: dict[str, AbstractRateLimiter] = request.app.state.rate_limiters
        client_key = resolve_client_key(request)

        for scope in scopes:
            result = limiters[scope].consume(f"ip:{client_key}")
            if result.allowed:
                continue

            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "scope": scope,
                    "key_hash": hash_client_key(client_key),
                    "limit": result.limit,
                    "retry_after_s": result.retry_after_seconds,
                    "path": request.url.path,
                },
            )
            raise build_rate_limit_error(
                scope, result, include_headers=settings.rate_limit.include_headers
            )

    return enforce_rate_limit
