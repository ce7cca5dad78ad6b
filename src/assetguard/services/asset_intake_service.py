"""
Asset intake service.

Receives asset-created events and runs the moderation pipeline for each one
as its own asyncio task. Delivery is treated as at-least-once: a redelivery
for an asset whose run is still in flight is dropped here, and one that
arrives later is absorbed by the pipeline's status guard.
"""

from __future__ import annotations

import asyncio
from typing import Dict

from assetguard.moderation.asset_lifecycle import AssetLifecycle
from assetguard.moderation.moderation_pipeline import ModerationPipeline
from assetguard.util.logger import get_logger

logger = get_logger("asset_intake_service")


class AssetIntakeService:
    """
    Per-asset task runner in front of :class:`ModerationPipeline`.

    * One task per asset id, tracked until it finishes.
    * Pipeline errors are logged; the asset stays ``uploading`` and is picked
      up again by :meth:`reap_stale_uploads`.
    """

    def __init__(
        self,
        pipeline: ModerationPipeline,
        lifecycle: AssetLifecycle,
        stale_after_seconds: float = 900.0,
    ) -> None:
        self._pipeline = pipeline
        self._lifecycle = lifecycle
        self._stale_after_seconds = stale_after_seconds
        self._tasks: Dict[str, asyncio.Task] = {}

    # ------------------------------------------------------
    # Public API
    # ------------------------------------------------------

    @property
    def in_flight(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def submit(self, asset_id: str) -> asyncio.Task | None:
        """Schedule a pipeline run for `asset_id`.

        Returns the running task, or None if a run for this asset is
        already in flight.
        """
        existing = self._tasks.get(asset_id)
        if existing is not None and not existing.done():
            logger.debug("[INTAKE] Asset %s already in flight, dropping redelivery", asset_id)
            return None

        task = asyncio.create_task(self._run(asset_id), name=f"intake-asset-{asset_id}")
        self._tasks[asset_id] = task
        task.add_done_callback(lambda t, key=asset_id: self._forget(key, t))
        return task

    async def drain(self) -> None:
        """Wait for every in-flight run to finish."""
        pending = [task for task in self._tasks.values() if not task.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def reap_stale_uploads(self) -> int:
        """Resubmit assets stuck in ``uploading`` past the staleness window.

        Returns:
            Number of assets resubmitted.
        """
        stale = await self._lifecycle.find_stale_uploads(self._stale_after_seconds)
        resubmitted = 0
        for asset in stale:
            if self.submit(asset.asset_id) is not None:
                resubmitted += 1
        if resubmitted:
            logger.warning("[INTAKE] Resubmitted %d stale upload(s)", resubmitted)
        return resubmitted

    async def shutdown(self) -> None:
        """Cancel all in-flight runs."""
        for task in self._tasks.values():
            if not task.done():
                task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        self._tasks.clear()
        logger.info("[INTAKE] All intake tasks shut down.")

    # -------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------

    def _forget(self, asset_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(asset_id) is task:
            del self._tasks[asset_id]

    async def _run(self, asset_id: str) -> None:
        try:
            await self._pipeline.process_asset(asset_id)
        except asyncio.CancelledError:
            logger.info("[INTAKE] Run for asset %s cancelled", asset_id)
            raise
        except Exception:
            logger.exception("[INTAKE] Pipeline raised for asset %s", asset_id)
