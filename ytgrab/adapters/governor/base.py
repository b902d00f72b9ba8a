"""Abuse governor interfaces and value types.

The HTTP layer and the janitor depend on this abstraction, not on the
in-memory implementation, so the state can later move to a shared store
(e.g., Redis) when the service runs with several workers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

UNKNOWN_CLIENT_KEY = "unknown"

REASON_BLOCKED = "blocked"
REASON_RATE_EXCEEDED = "rate-exceeded"
BLOCK_REASON_MANUAL = "manual"

RejectionReason = Literal["blocked", "rate-exceeded"]
BlockReason = Literal["rate-exceeded", "manual"]


def normalize_client_key(client_key: str | None) -> str:
    """Map a missing or blank client key to the shared "unknown" bucket."""
    if client_key is None or not str(client_key).strip():
        return UNKNOWN_CLIENT_KEY
    return str(client_key).strip()


@dataclass
class WindowEntry:
    """Click counter for one client within the current window."""

    click_count: int
    window_start: float


@dataclass
class BlockEntry:
    """Temporary block for one client."""

    unblock_at: float
    blocked_at: float
    reason: BlockReason


@dataclass(frozen=True)
class TrackResult:
    """Outcome of recording one click in the rate window."""

    allowed: bool
    current_count: int


@dataclass(frozen=True)
class BlockStatus:
    """Outcome of a block lookup.

    Attributes:
        blocked: Whether the client is currently blocked.
        remaining_seconds: Time until the block lifts (0 when not blocked).
        unblock_at: UNIX epoch seconds when the block lifts, if blocked.
    """

    blocked: bool
    remaining_seconds: float = 0.0
    unblock_at: float | None = None


@dataclass(frozen=True)
class AdmissionResult:
    """Result of an admission check.

    Attributes:
        allowed: Whether the request may proceed.
        current_count: Clicks counted in the current window (0 when rejected
            by an existing block).
        reason: Why the request was rejected, when it was.
        remaining_minutes: Whole minutes (rounded up) until the client may
            retry, when rejected.
        unblock_at: UNIX epoch seconds when the block lifts, when rejected.
    """

    allowed: bool
    current_count: int = 0
    reason: RejectionReason | None = None
    remaining_minutes: int | None = None
    unblock_at: float | None = None


@dataclass(frozen=True)
class BlockedClient:
    client_key: str
    reason: BlockReason
    blocked_at: float
    unblock_at: float
    remaining_seconds: float


@dataclass(frozen=True)
class TrackedSession:
    client_key: str
    click_count: int
    window_start: float
    elapsed_seconds: float


@dataclass(frozen=True)
class ClientStatus:
    """Read-only view of one client's governor state."""

    is_blocked: bool
    unblock_at: float | None
    clicks_in_window: int


@dataclass(frozen=True)
class SweepResult:
    """Entries removed by one janitor sweep."""

    sessions_evicted: int
    blocks_evicted: int

    @property
    def total(self) -> int:
        return self.sessions_evicted + self.blocks_evicted


@dataclass(frozen=True)
class GovernorStats:
    """Aggregate counters and current map sizes."""

    total_requests: int
    total_rejected: int
    total_escalations: int
    manual_blocks: int
    tracked_sessions: int
    blocked_clients: int
    max_clicks: int
    time_window_seconds: float
    block_duration_seconds: float


class AbstractAbuseGovernor(ABC):
    """Interface for abuse governors.

    All ``now`` arguments are UNIX epoch seconds; implementations fall back
    to their own clock when ``now`` is omitted.
    """

    @abstractmethod
    def admit(self, client_key: str | None, now: float | None = None) -> AdmissionResult:
        """Check and record one request; escalate to a block on threshold breach.

        Must never raise: an internal failure admits the request.
        """
        raise NotImplementedError

    @abstractmethod
    def record_and_check(self, client_key: str, now: float | None = None) -> TrackResult:
        """Count one click in the client's window and compare to the limit."""
        raise NotImplementedError

    @abstractmethod
    def is_blocked(self, client_key: str, now: float | None = None) -> BlockStatus:
        """Report whether the client is blocked, dropping an expired block."""
        raise NotImplementedError

    @abstractmethod
    def block(
        self,
        client_key: str,
        duration_seconds: float,
        now: float | None = None,
        *,
        reason: BlockReason = BLOCK_REASON_MANUAL,
    ) -> BlockEntry:
        """Create or overwrite a block lasting ``duration_seconds``."""
        raise NotImplementedError

    @abstractmethod
    def unblock(self, client_key: str) -> bool:
        """Remove a block; return False when the client was not blocked."""
        raise NotImplementedError

    @abstractmethod
    def clear_all(self) -> int:
        """Remove every block and return how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now: float | None = None) -> SweepResult:
        """Evict stale windows and expired blocks."""
        raise NotImplementedError

    @abstractmethod
    def list_blocked(self, now: float | None = None) -> list[BlockedClient]:
        """Active blocks sorted by remaining time, shortest first."""
        raise NotImplementedError

    @abstractmethod
    def list_sessions(self, now: float | None = None) -> list[TrackedSession]:
        """Windows still open, busiest first.

        Ended windows are omitted even before the janitor evicts them.
        """
        raise NotImplementedError

    @abstractmethod
    def client_status(self, client_key: str | None, now: float | None = None) -> ClientStatus:
        """Inspect one client without counting a click."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> GovernorStats:
        raise NotImplementedError
