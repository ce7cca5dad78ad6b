"""
Persistent storage for assets.

Tags are stored as a JSON array in a TEXT column. Moderation metadata is only
written by :meth:`AssetRepo.finalize`, whose ``WHERE status = 'uploading'``
guard makes the terminal transition happen at most once per asset.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import List

import aiosqlite

from assetguard.datatypes.asset_datatypes import Asset, AssetStatus
from assetguard.util.logger import get_logger
from assetguard.util.time_utils import from_epoch, to_epoch

logger = get_logger("asset_repo")

_COLUMNS = (
    "asset_id, author_id, name, description, tags, image_url, status, downloads, "
    "moderation_confidence, moderation_category, rejection_reason, created_at, "
    "published_date, rejection_date"
)


def _decode_tags(raw: str | None) -> List[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("[ASSET REPO] Unparseable tags column: %r", raw)
        return []
    if not isinstance(value, list):
        return []
    return [str(tag) for tag in value]


def _row_to_asset(row: aiosqlite.Row) -> Asset:
    return Asset(
        asset_id=row["asset_id"],
        author_id=row["author_id"],
        name=row["name"],
        description=row["description"],
        image_url=row["image_url"],
        status=AssetStatus(row["status"]),
        tags=_decode_tags(row["tags"]),
        downloads=row["downloads"],
        moderation_confidence=row["moderation_confidence"],
        moderation_category=row["moderation_category"],
        rejection_reason=row["rejection_reason"],
        created_at=from_epoch(row["created_at"]),
        published_date=from_epoch(row["published_date"]),
        rejection_date=from_epoch(row["rejection_date"]),
    )


class AssetRepo:
    """Low-level CRUD for the ``assets`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def insert(conn: aiosqlite.Connection, asset: Asset, now: datetime) -> None:
        stamp = to_epoch(now)
        await conn.execute(
            """
            INSERT INTO assets (asset_id, author_id, name, description, tags, image_url,
                                status, downloads, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
            """,
            (
                asset.asset_id,
                asset.author_id,
                asset.name,
                asset.description,
                json.dumps(asset.tags),
                asset.image_url,
                asset.status.value,
                stamp,
                stamp,
            ),
        )

    @staticmethod
    async def finalize(
        conn: aiosqlite.Connection,
        asset_id: str,
        status: AssetStatus,
        confidence: float | None,
        category: str | None,
        rejection_reason: str | None,
        now: datetime,
    ) -> bool:
        """Move an ``uploading`` asset to a terminal status.

        Returns True only if this call performed the transition.
        """
        if not status.is_terminal:
            raise ValueError(f"finalize() needs a terminal status, got {status}")
        stamp = to_epoch(now)
        cursor = await conn.execute(
            """
            UPDATE assets
               SET status = ?,
                   moderation_confidence = ?,
                   moderation_category = ?,
                   rejection_reason = ?,
                   published_date = ?,
                   rejection_date = ?,
                   updated_at = ?
             WHERE asset_id = ? AND status = ?
            """,
            (
                status.value,
                confidence,
                category,
                rejection_reason,
                stamp if status is AssetStatus.PUBLISHED else None,
                stamp if status is AssetStatus.REJECTED else None,
                stamp,
                asset_id,
                AssetStatus.UPLOADING.value,
            ),
        )
        return cursor.rowcount == 1

    @staticmethod
    async def increment_downloads(conn: aiosqlite.Connection, asset_id: str) -> bool:
        """Bump the download counter of a published asset."""
        cursor = await conn.execute(
            "UPDATE assets SET downloads = downloads + 1 WHERE asset_id = ? AND status = ?",
            (asset_id, AssetStatus.PUBLISHED.value),
        )
        return cursor.rowcount == 1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get(conn: aiosqlite.Connection, asset_id: str) -> Asset | None:
        cursor = await conn.execute(f"SELECT {_COLUMNS} FROM assets WHERE asset_id = ?", (asset_id,))
        row = await cursor.fetchone()
        return _row_to_asset(row) if row else None

    @staticmethod
    async def find_stale_uploads(conn: aiosqlite.Connection, older_than: datetime) -> List[Asset]:
        """Return ``uploading`` assets not touched since `older_than`."""
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM assets WHERE status = ? AND updated_at <= ? ORDER BY created_at",
            (AssetStatus.UPLOADING.value, to_epoch(older_than)),
        )
        return [_row_to_asset(row) for row in await cursor.fetchall()]

    @staticmethod
    async def count_by_status(conn: aiosqlite.Connection) -> dict[str, int]:
        cursor = await conn.execute("SELECT status, COUNT(*) FROM assets GROUP BY status")
        return {row[0]: row[1] for row in await cursor.fetchall()}
