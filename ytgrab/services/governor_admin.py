"""Admin operations over the abuse governor.

Operators use these to inspect who is being counted or blocked and to
override the governor's decisions. Every write is logged with a hashed
client key.
"""

import logging

from ytgrab.adapters.governor.base import BLOCK_REASON_MANUAL, AbstractAbuseGovernor
from ytgrab.adapters.governor.in_memory import remaining_minutes
from ytgrab.core.abuse_guard import format_timestamp
from ytgrab.core.config import settings
from ytgrab.core.errors import NotFoundAppError
from ytgrab.core.logging import hash_client_key
from ytgrab.schemas.governor import (
    BlockedClientResponse,
    BlockedListResponse,
    BlockResponse,
    ClearBlocksResponse,
    GovernorStatsResponse,
    JanitorStats,
    SessionListResponse,
    TrackedSessionResponse,
    UnblockResponse,
)
from ytgrab.services.janitor import GovernorJanitor

logger = logging.getLogger(__name__)


class GovernorAdminService:
    """Read/write access to governor state for manual intervention."""

    def __init__(self, governor: AbstractAbuseGovernor, janitor: GovernorJanitor) -> None:
        self.governor = governor
        self.janitor = janitor

    def list_blocked(self) -> BlockedListResponse:
        """List active blocks, the ones lifting soonest first."""
        blocked = [
            BlockedClientResponse(
                client_key=item.client_key,
                reason=item.reason,
                blocked_at=format_timestamp(item.blocked_at) or "",
                blocked_until=format_timestamp(item.unblock_at) or "",
                remaining_seconds=int(item.remaining_seconds),
                remaining_minutes=remaining_minutes(item.remaining_seconds),
            )
            for item in self.governor.list_blocked()
        ]
        return BlockedListResponse(count=len(blocked), blocked=blocked)

    def list_sessions(self) -> SessionListResponse:
        sessions = [
            TrackedSessionResponse(
                client_key=item.client_key,
                click_count=item.click_count,
                window_started_at=format_timestamp(item.window_start) or "",
                elapsed_seconds=int(item.elapsed_seconds),
            )
            for item in self.governor.list_sessions()
        ]
        return SessionListResponse(
            count=len(sessions),
            max_clicks=self.governor.stats().max_clicks,
            sessions=sessions,
        )

    def block_ip(self, client_key: str, duration_minutes: int) -> BlockResponse:
        """Block a client immediately, bypassing the click window.

        Args:
            client_key: Client to block.
            duration_minutes: Block length in minutes.

        Returns:
            BlockResponse with the unblock time.
        """
        entry = self.governor.block(
            client_key,
            duration_minutes * 60,
            reason=BLOCK_REASON_MANUAL,
        )
        logger.warning(
            "admin.block",
            extra={
                "key_hash": hash_client_key(client_key),
                "duration_minutes": duration_minutes,
            },
        )
        return BlockResponse(
            client_key=client_key,
            blocked_until=format_timestamp(entry.unblock_at) or "",
            duration_minutes=duration_minutes,
        )

    def unblock_ip(self, client_key: str) -> UnblockResponse:
        """Lift a block regardless of its remaining time.

        Raises:
            NotFoundAppError: If the client is not blocked.
        """
        if not self.governor.unblock(client_key):
            raise NotFoundAppError(
                code="client_not_blocked",
                message="Client is not currently blocked",
            )

        logger.info("admin.unblock", extra={"key_hash": hash_client_key(client_key)})
        return UnblockResponse(client_key=client_key, unblocked=True)

    def clear_all_blocks(self) -> ClearBlocksResponse:
        cleared = self.governor.clear_all()
        logger.warning("admin.clear_all_blocks", extra={"cleared": cleared})
        return ClearBlocksResponse(cleared=cleared)

    def get_stats(self) -> GovernorStatsResponse:
        stats = self.governor.stats()
        return GovernorStatsResponse(
            enabled=settings.governor.enabled,
            total_requests=stats.total_requests,
            total_rejected=stats.total_rejected,
            total_escalations=stats.total_escalations,
            manual_blocks=stats.manual_blocks,
            tracked_sessions=stats.tracked_sessions,
            blocked_clients=stats.blocked_clients,
            max_clicks=stats.max_clicks,
            time_window_seconds=stats.time_window_seconds,
            block_duration_seconds=stats.block_duration_seconds,
            janitor=JanitorStats(**self.janitor.stats()),
        )
