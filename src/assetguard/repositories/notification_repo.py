"""Persistent storage for user notifications."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List

import aiosqlite

from assetguard.util.time_utils import from_epoch, to_epoch


@dataclass
class NotificationRecord:
    """A single row from the ``notifications`` table."""
    notification_id: int
    user_id: str
    notification_type: str
    title: str
    body: str
    created_at: datetime | None
    is_read: bool = False


class NotificationRepo:
    """Low-level access to the ``notifications`` table."""

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        user_id: str,
        notification_type: str,
        title: str,
        body: str,
        now: datetime,
    ) -> int:
        cursor = await conn.execute(
            """
            INSERT INTO notifications (user_id, notification_type, title, body, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (user_id, notification_type, title, body, to_epoch(now)),
        )
        return cursor.lastrowid

    @staticmethod
    async def list_for_user(conn: aiosqlite.Connection, user_id: str) -> List[NotificationRecord]:
        cursor = await conn.execute(
            "SELECT * FROM notifications WHERE user_id = ? ORDER BY notification_id",
            (user_id,),
        )
        return [
            NotificationRecord(
                notification_id=row["notification_id"],
                user_id=row["user_id"],
                notification_type=row["notification_type"],
                title=row["title"],
                body=row["body"],
                created_at=from_epoch(row["created_at"]),
                is_read=bool(row["is_read"]),
            )
            for row in await cursor.fetchall()
        ]
