"""Pydantic schemas for the governor admin and status endpoints."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class BlockedClientResponse(BaseModel):
    """A currently blocked client."""

    client_key: str = Field(..., description="Client key (source address).")
    reason: Literal["rate-exceeded", "manual"] = Field(
        ..., description="Whether the block was automatic or set by an admin."
    )
    blocked_at: str = Field(..., description="ISO-8601 UTC time the block started.")
    blocked_until: str = Field(..., description="ISO-8601 UTC time the block lifts.")
    remaining_seconds: int = Field(..., ge=0)
    remaining_minutes: int = Field(..., ge=1)


class BlockedListResponse(BaseModel):
    count: int
    blocked: list[BlockedClientResponse]


class TrackedSessionResponse(BaseModel):
    """Click window of a client that is not blocked."""

    client_key: str
    click_count: int = Field(..., ge=1)
    window_started_at: str
    elapsed_seconds: int = Field(..., ge=0)


class SessionListResponse(BaseModel):
    count: int
    max_clicks: int
    sessions: list[TrackedSessionResponse]


class BlockRequest(BaseModel):
    """Manual block issued by an operator."""

    model_config = ConfigDict(str_strip_whitespace=True)

    client_key: str = Field(
        ...,
        min_length=1,
        max_length=256,
        description="Client key to block, usually an IP address.",
    )
    duration_minutes: int = Field(
        60,
        ge=1,
        le=60 * 24 * 30,
        description="Block length in minutes (default 60, max 30 days).",
    )


class BlockResponse(BaseModel):
    client_key: str
    blocked_until: str
    duration_minutes: int


class UnblockResponse(BaseModel):
    client_key: str
    unblocked: bool


class ClearBlocksResponse(BaseModel):
    cleared: int


class JanitorStats(BaseModel):
    running: bool
    interval_seconds: float
    runs: int
    failures: int
    evicted: int
    scratch_removed: int


class GovernorStatsResponse(BaseModel):
    """Aggregate counters, current map sizes and effective limits."""

    enabled: bool
    total_requests: int
    total_rejected: int
    total_escalations: int
    manual_blocks: int
    tracked_sessions: int
    blocked_clients: int
    max_clicks: int
    time_window_seconds: float
    block_duration_seconds: float
    janitor: JanitorStats


class ClientStatusResponse(BaseModel):
    """The caller's own governor state; reading it does not count as a click."""

    client_key: str = Field(..., description="Masked client key.")
    is_blocked: bool
    blocked_until: str | None = None
    clicks_in_window: int
    max_clicks: int
