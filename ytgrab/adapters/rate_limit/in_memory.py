"""In-memory fixed-window rate limiter.

Windows are aligned to multiples of ``window_seconds`` (a 60 s window
resets on the minute). State is per process.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from ytgrab.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


@dataclass
class _Window:
    start: int
    count: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Allow at most ``limit`` requests per key in each aligned window."""

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        name: str = "default",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self.name = name
        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._windows: dict[str, _Window] = {}

    @property
    def limit(self) -> int:
        return self._limit

    def _window_start(self, now: float) -> int:
        return int(now // self._window_seconds) * self._window_seconds

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume budget for ``key``.

        Rejected requests do not use up budget.

        Raises:
            ValueError: If key is empty or cost is below 1.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()
        start = self._window_start(now)
        reset_at = start + self._window_seconds

        with self._lock:
            window = self._windows.get(key)
            if window is None or window.start != start:
                window = self._windows[key] = _Window(start=start, count=0)

            if window.count + cost <= self._limit:
                window.count += cost
                return RateLimitResult(
                    allowed=True,
                    limit=self._limit,
                    remaining=self._limit - window.count,
                    reset_at=reset_at,
                )

            return RateLimitResult(
                allowed=False,
                limit=self._limit,
                remaining=max(0, self._limit - window.count),
                reset_at=reset_at,
                retry_after_seconds=max(1, int(math.ceil(reset_at - now))),
            )

    def prune(self, now: float | None = None) -> int:
        current_start = self._window_start(self._clock() if now is None else now)
        with self._lock:
            stale = [key for key, window in self._windows.items() if window.start < current_start]
            for key in stale:
                del self._windows[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
