"""Persistent storage for strike warnings. Rows are never deleted."""

from __future__ import annotations

from datetime import datetime
from typing import List

import aiosqlite

from assetguard.datatypes.strike_datatypes import StrikeWarning, WarningCategory
from assetguard.util.time_utils import from_epoch, to_epoch


def _row_to_warning(row: aiosqlite.Row) -> StrikeWarning:
    return StrikeWarning(
        warning_id=row["warning_id"],
        user_id=row["user_id"],
        category=WarningCategory(row["category"]),
        message=row["message"],
        evidence=row["evidence"],
        is_active=bool(row["is_active"]),
        created_at=from_epoch(row["created_at"]),
    )


class WarningRepo:
    """Low-level access to the ``warnings`` table."""

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        user_id: str,
        category: WarningCategory,
        message: str,
        evidence: str | None,
        now: datetime,
    ) -> StrikeWarning:
        cursor = await conn.execute(
            """
            INSERT INTO warnings (user_id, category, message, evidence, is_active, created_at)
            VALUES (?, ?, ?, ?, 1, ?)
            """,
            (user_id, category.value, message, evidence, to_epoch(now)),
        )
        return StrikeWarning(
            warning_id=cursor.lastrowid,
            user_id=user_id,
            category=category,
            message=message,
            evidence=evidence,
            is_active=True,
            created_at=from_epoch(to_epoch(now)),
        )

    @staticmethod
    async def count_active(conn: aiosqlite.Connection, user_id: str, category: WarningCategory) -> int:
        cursor = await conn.execute(
            "SELECT COUNT(*) FROM warnings WHERE user_id = ? AND category = ? AND is_active = 1",
            (user_id, category.value),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    @staticmethod
    async def list_for_user(conn: aiosqlite.Connection, user_id: str) -> List[StrikeWarning]:
        cursor = await conn.execute(
            "SELECT * FROM warnings WHERE user_id = ? ORDER BY warning_id",
            (user_id,),
        )
        return [_row_to_warning(row) for row in await cursor.fetchall()]
