"""Rate limiter interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of consuming one unit of a client's budget.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Requests allowed per window.
        remaining: Budget left in the current window (0 when rejected).
        reset_at: UNIX epoch seconds at which the current window ends.
        retry_after_seconds: Seconds until the window ends, set only when rejected.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None = None


class AbstractRateLimiter(ABC):
    """A per-key request budget over a time window."""

    name: str = "abstract"

    @abstractmethod
    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Take ``cost`` units from ``key``'s budget if enough is left."""
        raise NotImplementedError

    @abstractmethod
    def prune(self, now: float | None = None) -> int:
        """Forget keys whose window has ended; return how many were dropped."""
        raise NotImplementedError
