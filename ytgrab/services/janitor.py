"""Periodic eviction of stale governor state and scratch data.

Lookups already drop expired blocks lazily; the janitor only bounds memory
for clients that never come back. The same cycle forgets ended rate-limit
windows and removes download scratch directories left behind by timed-out
downloads.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from ytgrab.adapters.downloader.base import AbstractDownloader
from ytgrab.adapters.governor.base import AbstractAbuseGovernor, SweepResult
from ytgrab.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)


class GovernorJanitor:
    """Runs ``governor.sweep()`` every ``interval_seconds`` on the event loop.

    A failing step is logged and counted; the other steps and later cycles
    still run.
    """

    def __init__(
        self,
        governor: AbstractAbuseGovernor,
        *,
        interval_seconds: float,
        rate_limiters: Iterable[AbstractRateLimiter] = (),
        downloader: AbstractDownloader | None = None,
        scratch_max_age_seconds: float = 1800.0,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._governor = governor
        self._interval = interval_seconds
        self._rate_limiters = list(rate_limiters)
        self._downloader = downloader
        self._scratch_max_age = scratch_max_age_seconds
        self._task: asyncio.Task[None] | None = None
        self.runs = 0
        self.failures = 0
        self.evicted = 0
        self.scratch_removed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> SweepResult | None:
        """Run a single housekeeping cycle.

        Returns:
            The governor sweep result, or None when the governor sweep failed.
        """
        self.runs += 1
        result = self._sweep_governor()
        self._prune_rate_limiters()
        self._sweep_scratch()
        return result

    def _sweep_governor(self) -> SweepResult | None:
        try:
            result = self._governor.sweep()
        except Exception:
            self.failures += 1
            logger.exception("janitor.sweep_failed", extra={"run": self.runs})
            return None

        self.evicted += result.total
        if result.total:
            logger.info(
                "janitor.sweep",
                extra={
                    "sessions_evicted": result.sessions_evicted,
                    "blocks_evicted": result.blocks_evicted,
                },
            )
        return result

    def _prune_rate_limiters(self) -> None:
        for limiter in self._rate_limiters:
            try:
                limiter.prune()
            except Exception:
                self.failures += 1
                logger.exception(
                    "janitor.rate_limit_prune_failed",
                    extra={"run": self.runs, "scope": limiter.name},
                )

    def _sweep_scratch(self) -> None:
        if self._downloader is None:
            return
        try:
            self.scratch_removed += self._downloader.sweep_scratch(self._scratch_max_age)
        except Exception:
            self.failures += 1
            logger.exception("janitor.scratch_sweep_failed", extra={"run": self.runs})

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.run_once()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop (idempotent)."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info("janitor.started", extra={"interval_s": self._interval})

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("janitor.stopped", extra={"runs": self.runs, "evicted": self.evicted})

    def stats(self) -> dict[str, int | float | bool]:
        return {
            "running": self.running,
            "interval_seconds": self._interval,
            "runs": self.runs,
            "failures": self.failures,
            "evicted": self.evicted,
            "scratch_removed": self.scratch_removed,
        }
