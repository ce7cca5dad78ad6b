"""SQLite-backed notification sink."""

from __future__ import annotations

from typing import Callable, List
from datetime import datetime

from assetguard.database.db_connection import ConnectionManager
from assetguard.repositories.notification_repo import NotificationRecord, NotificationRepo
from assetguard.util.logger import get_logger
from assetguard.util.time_utils import utc_now

logger = get_logger("notification_service")


class SqliteNotificationSink:
    """Stores user-facing notifications in the ``notifications`` table."""

    def __init__(self, db: ConnectionManager, clock: Callable[[], datetime] = utc_now) -> None:
        self._db = db
        self._clock = clock

    async def append(self, user_id: str, notification_type: str, title: str, message: str) -> None:
        async with self._db.transaction() as conn:
            await NotificationRepo.insert(conn, user_id, notification_type, title, message, self._clock())
        logger.debug("[NOTIFY] %s -> %s: %s", notification_type, user_id, title)

    async def list_for_user(self, user_id: str) -> List[NotificationRecord]:
        async with self._db.read() as conn:
            return await NotificationRepo.list_for_user(conn, user_id)
