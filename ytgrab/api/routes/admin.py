"""Governor admin endpoints (require X-Admin-Key)."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from ytgrab.core.auth import verify_admin_key
from ytgrab.schemas.governor import (
    BlockedListResponse,
    BlockRequest,
    BlockResponse,
    ClearBlocksResponse,
    GovernorStatsResponse,
    SessionListResponse,
    UnblockResponse,
)
from ytgrab.services.governor_admin import GovernorAdminService

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_key)],
)


def get_admin_service(request: Request) -> GovernorAdminService:
    return GovernorAdminService(
        governor=request.app.state.governor,
        janitor=request.app.state.janitor,
    )


AdminService = Annotated[GovernorAdminService, Depends(get_admin_service)]


@router.get("/blocked", response_model=BlockedListResponse)
def list_blocked(service: AdminService) -> BlockedListResponse:
    """List blocked clients, the ones lifting soonest first."""
    return service.list_blocked()


@router.get("/sessions", response_model=SessionListResponse)
def list_sessions(service: AdminService) -> SessionListResponse:
    """List clients currently being counted, busiest first."""
    return service.list_sessions()


@router.get("/stats", response_model=GovernorStatsResponse)
def get_stats(service: AdminService) -> GovernorStatsResponse:
    return service.get_stats()


@router.post("/block", response_model=BlockResponse)
def block_client(payload: BlockRequest, service: AdminService) -> BlockResponse:
    """Block a client for ``duration_minutes``, overwriting any existing block."""
    return service.block_ip(payload.client_key, payload.duration_minutes)


@router.delete("/blocked/{client_key}", response_model=UnblockResponse)
def unblock_client(client_key: str, service: AdminService) -> UnblockResponse:
    """Lift a block immediately. 404 when the client is not blocked."""
    return service.unblock_ip(client_key)


@router.delete("/blocked", response_model=ClearBlocksResponse)
def clear_all_blocks(service: AdminService) -> ClearBlocksResponse:
    return service.clear_all_blocks()
