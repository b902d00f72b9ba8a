from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from ytgrab.adapters.governor.base import AbstractAbuseGovernor
from ytgrab.core.abuse_guard import format_timestamp, get_governor
from ytgrab.core.client_key import mask_client_key, resolve_client_key
from ytgrab.core.rate_limit import SCOPE_API, limit_requests
from ytgrab.schemas.governor import ClientStatusResponse

router = APIRouter(prefix="/api", tags=["Status"])


@router.get(
    "/status",
    response_model=ClientStatusResponse,
    dependencies=[Depends(limit_requests(SCOPE_API))],
)
def client_status(
    request: Request,
    governor: Annotated[AbstractAbuseGovernor, Depends(get_governor)],
) -> ClientStatusResponse:
    """Report the caller's own click count and block state.

    Lets a front-end back off before it gets blocked. Not counted as a click.
    """
    client_key = resolve_client_key(request)
    status = governor.client_status(client_key)
    return ClientStatusResponse(
        client_key=mask_client_key(client_key),
        is_blocked=status.is_blocked,
        blocked_until=format_timestamp(status.unblock_at),
        clicks_in_window=status.clicks_in_window,
        max_clicks=governor.stats().max_clicks,
    )
