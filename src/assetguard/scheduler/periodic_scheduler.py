"""Generic scheduler for periodic maintenance jobs.

Runs a user-supplied coroutine on a fixed interval. Used for the ban expiry
sweep and the stale upload reaper.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from assetguard.util.logger import get_logger

logger = get_logger("periodic_scheduler")


class PeriodicTaskScheduler:
    """
    Reusable scheduler for one periodic job.

    Args:
        name: Human-readable name for logging (e.g., "EXPIRY SWEEP").
        job: Async callable with no arguments.
        get_interval: Callable returning the interval in seconds (called at start).
        run_immediately: Run the job once before the first sleep.
    """

    def __init__(
        self,
        name: str,
        job: Callable[[], Awaitable[Any]],
        get_interval: Callable[[], float],
        run_immediately: bool = True,
    ) -> None:
        self._name = name
        self._job = job
        self._get_interval = get_interval
        self._run_immediately = run_immediately
        self._task: asyncio.Task | None = None
        self.runs = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Any:
        """Run the job now, outside the loop. Errors propagate."""
        result = await self._job()
        self.runs += 1
        return result

    async def _run_loop(self, interval: float) -> None:
        """Infinite loop: run job, sleep, repeat."""
        logger.info("[%s] Starting periodic job (interval=%.1fs)", self._name, interval)
        try:
            if not self._run_immediately:
                await asyncio.sleep(interval)
            while True:
                try:
                    await self.run_once()
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.error("[%s] Unexpected error during run: %s", self._name, exc)
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.info("[%s] Periodic job cancelled", self._name)
            raise

    def start(self) -> None:
        """Start the background task if not already running."""
        if self.is_running:
            logger.warning("[%s] Task already running", self._name)
            return
        interval = self._get_interval()
        if interval <= 0:
            raise ValueError(f"{self._name}: interval must be positive, got {interval}")
        self._task = asyncio.create_task(self._run_loop(interval), name=f"periodic-{self._name}")

    async def shutdown(self) -> None:
        """Stop the task and wait for it to exit."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("[%s] Scheduler shutdown complete", self._name)
