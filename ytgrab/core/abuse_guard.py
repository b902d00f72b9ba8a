"""Abuse governor dependency for FastAPI routes.

This module wires the governor adapter into the HTTP layer.

Design goals:
- Explicit ownership: the governor instance is built by the app factory and
  lives on ``app.state``; routes reach it through a dependency, never a
  module-level singleton.
- Fail open: the guard is harm reduction, not a security boundary, so an
  internal failure admits the request instead of failing it.
- Installed upstream of the slow media routes so blocked clients never
  reach metadata extraction or file transfer.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Annotated

from fastapi import Depends, Request

from ytgrab.adapters.governor.base import (
    REASON_BLOCKED,
    AbstractAbuseGovernor,
    AdmissionResult,
)
from ytgrab.core.client_key import resolve_client_key
from ytgrab.core.config import settings
from ytgrab.core.errors import TooManyRequestsAppError
from ytgrab.core.logging import hash_client_key

logger = logging.getLogger(__name__)


def get_governor(request: Request) -> AbstractAbuseGovernor:
    """Return the governor owned by the running application."""
    return request.app.state.governor


def format_timestamp(epoch_seconds: float | None) -> str | None:
    """Render UNIX epoch seconds as an ISO-8601 UTC string."""
    if epoch_seconds is None:
        return None
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).isoformat()


def build_rejection(result: AdmissionResult, *, include_headers: bool) -> TooManyRequestsAppError:
    """Translate a rejected admission into the 429 domain error.

    Args:
        result: Admission result with ``allowed=False``.
        include_headers: Whether to attach Retry-After / X-Governor-* headers.

    Returns:
        TooManyRequestsAppError ready to raise.
    """
    minutes = result.remaining_minutes or 1
    blocked_until = format_timestamp(result.unblock_at)
    retry_after = minutes * 60

    if result.reason == REASON_BLOCKED:
        code = "client_blocked"
        message = (
            "You have been temporarily blocked due to suspicious activity. "
            f"Please try again in {minutes} minutes."
        )
    else:
        code = "rate_limit_exceeded"
        message = (
            "Too many requests! You have been blocked for "
            f"{minutes} minutes due to suspicious activity."
        )

    headers: dict[str, str] | None = None
    if include_headers:
        headers = {
            "Retry-After": str(retry_after),
            "X-Governor-Reason": str(result.reason),
        }
        if result.unblock_at is not None:
            headers["X-Governor-Unblock-At"] = str(int(math.ceil(result.unblock_at)))

    return TooManyRequestsAppError(
        code=code,
        message=message,
        details={
            "reason": str(result.reason),
            "remaining_minutes": minutes,
            "blocked_until": blocked_until or "",
            "retry_after": retry_after,
        },
        headers=headers,
    )


async def enforce_admission(
    request: Request,
    governor: Annotated[AbstractAbuseGovernor, Depends(get_governor)],
) -> None:
    """FastAPI dependency enforcing the abuse governor.

    Counts one click for the requester. Raises 429 when the requester is
    blocked or has just exceeded the click limit.

    Args:
        request: FastAPI request.
        governor: Governor resolved from application state.

    Raises:
        TooManyRequestsAppError: When the governor rejects the request.
    """

    if not settings.governor.enabled:
        return

    client_key = resolve_client_key(request)
    result = governor.admit(client_key)
    request.state.admission = result

    if result.allowed:
        logger.debug(
            "governor.allowed",
            extra={
                "key_hash": hash_client_key(client_key),
                "click_count": result.current_count,
                "path": request.url.path,
            },
        )
        return

    logger.warning(
        "governor.rejected",
        extra={
            "key_hash": hash_client_key(client_key),
            "reason": result.reason,
            "remaining_minutes": result.remaining_minutes,
            "path": request.url.path,
        },
    )
    raise build_rejection(result, include_headers=settings.governor.include_headers)
