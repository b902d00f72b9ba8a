from __future__ import annotations

import time
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from ytgrab.adapters.governor.base import AbstractAbuseGovernor
from ytgrab.core.abuse_guard import get_governor

router = APIRouter(tags=["Health"])


@router.get("/health")
@router.get("/api/health")
def health_check(
    request: Request,
    governor: Annotated[AbstractAbuseGovernor, Depends(get_governor)],
) -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring systems to determine service health.
    Also reports the governor's map sizes so memory growth is visible.
    """

    stats = governor.stats()
    return {
        "status": "ok",
        "uptime_seconds": round(time.monotonic() - request.app.state.started_at, 1),
        "blocked_clients": stats.blocked_clients,
        "tracked_sessions": stats.tracked_sessions,
    }
