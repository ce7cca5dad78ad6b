"""
Asset state machine.

``uploading`` is the only non-terminal state the pipeline acts on; the single
``uploading -> published | rejected`` transition is a conditional update, so
a redelivered or concurrent pipeline run can never apply a second decision.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Callable, List

from assetguard.database.db_connection import ConnectionManager
from assetguard.datatypes.asset_datatypes import Asset, AssetStatus
from assetguard.datatypes.audit_datatypes import AuditAction
from assetguard.datatypes.moderation_datatypes import DecisionOutcome, ModerationDecision
from assetguard.errors import InvalidInput, InvalidState, NotFound
from assetguard.moderation.audit_trail import AuditTrail
from assetguard.repositories.asset_repo import AssetRepo
from assetguard.util.logger import get_logger
from assetguard.util.time_utils import utc_now

logger = get_logger("asset_lifecycle")


class AssetLifecycle:
    """Creates assets and applies their status transitions."""

    def __init__(
        self,
        db: ConnectionManager,
        audit: AuditTrail,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db = db
        self._audit = audit
        self._clock = clock

    async def create_asset(
        self,
        author_id: str,
        name: str,
        description: str,
        image_url: str,
        tags: List[str] | None = None,
        status: AssetStatus = AssetStatus.UPLOADING,
    ) -> Asset:
        """Persist a new asset, ``uploading`` unless told otherwise.

        The image URL is stored as given; validating it is the pipeline's job.

        Raises:
            InvalidInput: Missing author or a terminal initial status.
        """
        if not author_id or not author_id.strip():
            raise InvalidInput("asset author is required")
        if status.is_terminal:
            raise InvalidInput(f"assets cannot be created as {status}")

        now = self._clock()
        asset = Asset(
            asset_id=uuid.uuid4().hex,
            author_id=author_id,
            name=name or "",
            description=description or "",
            image_url=image_url or "",
            status=status,
            tags=list(tags or []),
            created_at=now,
        )
        async with self._db.transaction() as conn:
            await AssetRepo.insert(conn, asset, now)

        await self._audit.append(
            author_id,
            AuditAction.ASSET_CREATED,
            asset.asset_id,
            {"name": asset.name, "status": str(status)},
        )
        logger.info("[LIFECYCLE] Created asset %s (%s) for %s", asset.asset_id, status, author_id)
        return asset

    async def get(self, asset_id: str) -> Asset | None:
        async with self._db.read() as conn:
            return await AssetRepo.get(conn, asset_id)

    async def require(self, asset_id: str) -> Asset:
        asset = await self.get(asset_id)
        if asset is None:
            raise NotFound(f"asset {asset_id} not found")
        return asset

    async def apply_decision(self, asset_id: str, decision: ModerationDecision) -> bool:
        """Apply a pipeline decision as the asset's terminal transition.

        Returns:
            True if this call moved the asset out of ``uploading``; False if
            the asset had already left that state.
        """
        if decision.outcome is DecisionOutcome.PUBLISH:
            status, rejection_reason = AssetStatus.PUBLISHED, None
        else:
            status, rejection_reason = AssetStatus.REJECTED, decision.reason

        async with self._db.transaction() as conn:
            applied = await AssetRepo.finalize(
                conn,
                asset_id,
                status,
                decision.confidence,
                decision.category or None,
                rejection_reason,
                self._clock(),
            )
        if not applied:
            logger.info("[LIFECYCLE] Asset %s already left uploading; %s not applied", asset_id, status)
        return applied

    async def record_download(self, asset_id: str, actor_id: str) -> Asset:
        """Count one download of a published asset.

        Raises:
            NotFound: Unknown asset.
            InvalidState: The asset is not published.
        """
        async with self._db.transaction() as conn:
            asset = await AssetRepo.get(conn, asset_id)
            if asset is None:
                raise NotFound(f"asset {asset_id} not found")
            if asset.status is not AssetStatus.PUBLISHED:
                raise InvalidState(f"asset {asset_id} is {asset.status}, not published")
            await AssetRepo.increment_downloads(conn, asset_id)
            asset.downloads += 1

        await self._audit.append(actor_id, AuditAction.ASSET_DOWNLOADED, asset_id, {"downloads": asset.downloads})
        return asset

    async def find_stale_uploads(self, max_age_seconds: float) -> List[Asset]:
        """Assets left in ``uploading`` for longer than `max_age_seconds`."""
        cutoff = self._clock() - timedelta(seconds=max_age_seconds)
        async with self._db.read() as conn:
            return await AssetRepo.find_stale_uploads(conn, cutoff)

    async def status_counts(self) -> dict[str, int]:
        async with self._db.read() as conn:
            return await AssetRepo.count_by_status(conn)
