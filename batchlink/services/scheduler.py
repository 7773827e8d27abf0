"""Polling scheduler for batches still waiting on a confident link."""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class LinkScheduler:
    """Periodically re-runs linking over open batches.

    Supports:
    - Fixed-interval sweeps
    - Manual trigger support
    - Graceful shutdown
    """

    def __init__(
        self,
        sweep_callback: Callable[[], Awaitable[object]],
        interval_minutes: int = 15,
    ):
        """Initialize scheduler.

        Args:
            sweep_callback: Async function running one sweep
            interval_minutes: Minutes between sweeps
        """
        self.sweep_callback = sweep_callback
        self.interval_minutes = interval_minutes
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the scheduler."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._running = True
        logger.info(f"Starting link scheduler (every {self.interval_minutes} min)")
        self._task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        self._running = False
        logger.info("Stopping link scheduler")

        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def run_now(self) -> object:
        """Run a sweep immediately, outside the schedule."""
        logger.info("Manual link sweep triggered")
        return await self.sweep_callback()

    async def _sweep_loop(self) -> None:
        while self._running:
            try:
                await self.sweep_callback()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in link sweep: {e}")

            try:
                await asyncio.sleep(self.interval_minutes * 60)
            except asyncio.CancelledError:
                break
