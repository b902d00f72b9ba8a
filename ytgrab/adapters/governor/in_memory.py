"""In-memory abuse governor.

Notes:
- Per-process only: running multiple workers multiplies the effective limit
  and splits the block list.
- Thread-safe: every check-then-act runs under one re-entrant lock, so a
  client key never holds a window entry and a block at the same time.
- Not a security boundary: rotating source addresses bypasses it.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable

from ytgrab.adapters.governor.base import (
    BLOCK_REASON_MANUAL,
    REASON_BLOCKED,
    REASON_RATE_EXCEEDED,
    AbstractAbuseGovernor,
    AdmissionResult,
    BlockEntry,
    BlockedClient,
    BlockReason,
    BlockStatus,
    ClientStatus,
    GovernorStats,
    SweepResult,
    TrackedSession,
    TrackResult,
    WindowEntry,
    normalize_client_key,
)
from ytgrab.core.logging import hash_client_key

logger = logging.getLogger(__name__)


def remaining_minutes(seconds: float) -> int:
    """Round a remaining duration up to whole minutes (never below 1)."""
    return max(1, int(math.ceil(seconds / 60)))


class InMemoryAbuseGovernor(AbstractAbuseGovernor):
    """Sliding click window per client, escalating to a timed block.

    A client may make ``max_clicks`` requests in a window that starts at its
    first click. The next click inside that window replaces the window entry
    with a block lasting ``block_duration_seconds``. Expired blocks are
    dropped lazily on lookup; ``sweep`` bounds memory between lookups.
    """

    def __init__(
        self,
        *,
        max_clicks: int,
        time_window_seconds: float,
        block_duration_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the governor.

        Args:
            max_clicks: Requests allowed per window.
            time_window_seconds: Window length in seconds.
            block_duration_seconds: Automatic block length in seconds.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If any limit is not positive.
        """
        if max_clicks < 1:
            raise ValueError("max_clicks must be >= 1")
        if time_window_seconds <= 0:
            raise ValueError("time_window_seconds must be > 0")
        if block_duration_seconds <= 0:
            raise ValueError("block_duration_seconds must be > 0")

        self._max_clicks = max_clicks
        self._time_window = float(time_window_seconds)
        self._block_duration = float(block_duration_seconds)
        self._clock = clock
        self._lock = threading.RLock()
        self._windows: dict[str, WindowEntry] = {}
        self._blocks: dict[str, BlockEntry] = {}
        self._total_requests = 0
        self._total_rejected = 0
        self._total_escalations = 0
        self._manual_blocks = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryAbuseGovernor(max_clicks={self._max_clicks}, "
            f"time_window_seconds={self._time_window}, "
            f"block_duration_seconds={self._block_duration}, "
            f"tracked={len(self._windows)}, blocked={len(self._blocks)})"
        )

    @property
    def max_clicks(self) -> int:
        return self._max_clicks

    def _now(self, now: float | None) -> float:
        return self._clock() if now is None else now

    def admit(self, client_key: str | None, now: float | None = None) -> AdmissionResult:
        """Run the full admission check for one request.

        Order: an active block rejects immediately; otherwise the click is
        counted and a breach of ``max_clicks`` escalates to a block.

        Args:
            client_key: Requester identifier; blank values share "unknown".
            now: Optional timestamp override.

        Returns:
            AdmissionResult. Internal failures yield ``allowed=True``.
        """
        try:
            return self._admit(normalize_client_key(client_key), self._now(now))
        except Exception:
            logger.exception("governor.admit_failed")
            return AdmissionResult(allowed=True)

    def _admit(self, key: str, now: float) -> AdmissionResult:
        with self._lock:
            self._total_requests += 1

            status = self.is_blocked(key, now)
            if status.blocked:
                self._total_rejected += 1
                logger.info(
                    "governor.blocked_attempt",
                    extra={
                        "key_hash": hash_client_key(key),
                        "remaining_s": round(status.remaining_seconds, 1),
                    },
                )
                return AdmissionResult(
                    allowed=False,
                    reason=REASON_BLOCKED,
                    remaining_minutes=remaining_minutes(status.remaining_seconds),
                    unblock_at=status.unblock_at,
                )

            tracked = self.record_and_check(key, now)
            if tracked.allowed:
                return AdmissionResult(allowed=True, current_count=tracked.current_count)

            window_start = self._windows[key].window_start
            entry = self._block_locked(key, now, self._block_duration, REASON_RATE_EXCEEDED)
            self._total_escalations += 1
            self._total_rejected += 1

        logger.warning(
            "governor.escalated",
            extra={
                "key_hash": hash_client_key(key),
                "click_count": tracked.current_count,
                "elapsed_s": round(now - window_start, 1),
                "block_duration_s": self._block_duration,
            },
        )
        return AdmissionResult(
            allowed=False,
            current_count=tracked.current_count,
            reason=REASON_RATE_EXCEEDED,
            remaining_minutes=remaining_minutes(self._block_duration),
            unblock_at=entry.unblock_at,
        )

    def record_and_check(self, client_key: str, now: float | None = None) -> TrackResult:
        now = self._now(now)
        with self._lock:
            entry = self._windows.get(client_key)
            if entry is None or now - entry.window_start > self._time_window:
                self._windows[client_key] = WindowEntry(click_count=1, window_start=now)
                return TrackResult(allowed=True, current_count=1)

            entry.click_count += 1
            return TrackResult(
                allowed=entry.click_count <= self._max_clicks,
                current_count=entry.click_count,
            )

    def is_blocked(self, client_key: str, now: float | None = None) -> BlockStatus:
        now = self._now(now)
        with self._lock:
            entry = self._blocks.get(client_key)
            if entry is None:
                return BlockStatus(blocked=False)
            if now < entry.unblock_at:
                return BlockStatus(
                    blocked=True,
                    remaining_seconds=entry.unblock_at - now,
                    unblock_at=entry.unblock_at,
                )
            del self._blocks[client_key]

        logger.info("governor.block_expired", extra={"key_hash": hash_client_key(client_key)})
        return BlockStatus(blocked=False)

    def block(
        self,
        client_key: str,
        duration_seconds: float,
        now: float | None = None,
        *,
        reason: BlockReason = BLOCK_REASON_MANUAL,
    ) -> BlockEntry:
        if duration_seconds <= 0:
            raise ValueError("duration_seconds must be > 0")
        key = normalize_client_key(client_key)
        with self._lock:
            entry = self._block_locked(key, self._now(now), duration_seconds, reason)
            if reason == BLOCK_REASON_MANUAL:
                self._manual_blocks += 1
        return entry

    def _block_locked(
        self, key: str, now: float, duration_seconds: float, reason: BlockReason
    ) -> BlockEntry:
        entry = BlockEntry(unblock_at=now + duration_seconds, blocked_at=now, reason=reason)
        self._blocks[key] = entry
        self._windows.pop(key, None)
        return entry

    def unblock(self, client_key: str) -> bool:
        with self._lock:
            return self._blocks.pop(normalize_client_key(client_key), None) is not None

    def clear_all(self) -> int:
        with self._lock:
            cleared = len(self._blocks)
            self._blocks.clear()
        return cleared

    def sweep(self, now: float | None = None) -> SweepResult:
        """Evict windows older than the window length and expired blocks.

        Keys are snapshotted before deletion so concurrent inserts never
        disturb iteration.
        """
        now = self._now(now)
        with self._lock:
            stale = [
                key
                for key, entry in list(self._windows.items())
                if now - entry.window_start > self._time_window
            ]
            expired = [
                key for key, entry in list(self._blocks.items()) if entry.unblock_at <= now
            ]
            for key in stale:
                del self._windows[key]
            for key in expired:
                del self._blocks[key]

        return SweepResult(sessions_evicted=len(stale), blocks_evicted=len(expired))

    def list_blocked(self, now: float | None = None) -> list[BlockedClient]:
        now = self._now(now)
        with self._lock:
            snapshot = list(self._blocks.items())

        blocked = [
            BlockedClient(
                client_key=key,
                reason=entry.reason,
                blocked_at=entry.blocked_at,
                unblock_at=entry.unblock_at,
                remaining_seconds=entry.unblock_at - now,
            )
            for key, entry in snapshot
            if entry.unblock_at > now
        ]
        blocked.sort(key=lambda item: item.remaining_seconds)
        return blocked

    def list_sessions(self, now: float | None = None) -> list[TrackedSession]:
        now = self._now(now)
        with self._lock:
            snapshot = [
                (key, entry.click_count, entry.window_start)
                for key, entry in self._windows.items()
            ]

        sessions = [
            TrackedSession(
                client_key=key,
                click_count=count,
                window_start=start,
                elapsed_seconds=max(0.0, now - start),
            )
            for key, count, start in snapshot
            if now - start <= self._time_window
        ]
        sessions.sort(key=lambda item: item.click_count, reverse=True)
        return sessions

    def client_status(self, client_key: str | None, now: float | None = None) -> ClientStatus:
        key = normalize_client_key(client_key)
        now = self._now(now)
        with self._lock:
            status = self.is_blocked(key, now)
            entry = self._windows.get(key)
            clicks = 0
            if entry is not None and now - entry.window_start <= self._time_window:
                clicks = entry.click_count

        return ClientStatus(
            is_blocked=status.blocked,
            unblock_at=status.unblock_at,
            clicks_in_window=clicks,
        )

    def stats(self) -> GovernorStats:
        with self._lock:
            return GovernorStats(
                total_requests=self._total_requests,
                total_rejected=self._total_rejected,
                total_escalations=self._total_escalations,
                manual_blocks=self._manual_blocks,
                tracked_sessions=len(self._windows),
                blocked_clients=len(self._blocks),
                max_clicks=self._max_clicks,
                time_window_seconds=self._time_window,
                block_duration_seconds=self._block_duration,
            )
