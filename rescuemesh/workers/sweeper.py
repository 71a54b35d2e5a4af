"""
Background Staleness Sweeper
============================

Runs every ``SWEEP_INTERVAL_SECONDS`` (default 5 s), independent of how
often devices report.  Each cycle asks the coordinator to mark devices
offline whose last report is older than the staleness timeout; the
coordinator publishes only when at least one device changed state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from rescuemesh.services.coordinator import CoordinationService

logger = logging.getLogger(__name__)


class StaleSweeper:
    def __init__(self, coordinator: CoordinationService, interval_seconds: float = 5.0):
        self.coordinator = coordinator
        self.interval = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── Public API ────────────────────────────────────────────────────

    async def start(self) -> None:
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())
        logger.info("Stale sweeper started (interval=%ss)", self.interval)

    async def stop(self) -> None:
        if self._stop_event:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Stale sweeper stopped")

    # ── Internals ─────────────────────────────────────────────────────

    async def _loop(self) -> None:
        """Periodic loop: run a sweep then sleep."""
        assert self._stop_event is not None
        while not self._stop_event.is_set():
            try:
                await self.coordinator.sweep_stale()
            except Exception:
                logger.exception("Unhandled error in stale sweep")
            # Wait for the interval or until stop is signalled
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                pass  # next cycle
