"""
Persistent storage for users and their embedded ban record.

Ban timestamps are INTEGER unix seconds; ``ban_until_date`` NULL on a banned
user means the ban is permanent.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List

import aiosqlite

from assetguard.datatypes.principal_datatypes import Role
from assetguard.datatypes.strike_datatypes import BanRecord
from assetguard.util.time_utils import from_epoch, to_epoch


@dataclass
class UserRecord:
    """A single row from the ``users`` table."""
    user_id: str
    display_name: str
    role: Role
    ban: BanRecord
    auth_disabled: bool
    created_at: datetime | None


def _row_to_user(row: aiosqlite.Row) -> UserRecord:
    return UserRecord(
        user_id=row["user_id"],
        display_name=row["display_name"],
        role=Role(row["role"]),
        ban=BanRecord(
            is_banned=bool(row["is_banned"]),
            ban_reason=row["ban_reason"],
            ban_date=from_epoch(row["ban_date"]),
            ban_until_date=from_epoch(row["ban_until_date"]),
        ),
        auth_disabled=bool(row["auth_disabled"]),
        created_at=from_epoch(row["created_at"]),
    )


class UserRepo:
    """Low-level CRUD for the ``users`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def upsert(
        conn: aiosqlite.Connection,
        user_id: str,
        display_name: str,
        role: Role,
        now: datetime,
    ) -> None:
        await conn.execute(
            """
            INSERT INTO users (user_id, display_name, role, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                display_name = excluded.display_name,
                role         = excluded.role
            """,
            (user_id, display_name, role.value, to_epoch(now)),
        )

    @staticmethod
    async def set_ban(
        conn: aiosqlite.Connection,
        user_id: str,
        reason: str,
        ban_date: datetime,
        ban_until: datetime | None,
    ) -> bool:
        cursor = await conn.execute(
            """
            UPDATE users
               SET is_banned = 1, ban_reason = ?, ban_date = ?, ban_until_date = ?
             WHERE user_id = ?
            """,
            (reason, to_epoch(ban_date), to_epoch(ban_until), user_id),
        )
        return cursor.rowcount == 1

    @staticmethod
    async def clear_ban(conn: aiosqlite.Connection, user_id: str) -> bool:
        """Unconditionally lift a ban. Returns False if the user was not banned."""
        cursor = await conn.execute(
            """
            UPDATE users
               SET is_banned = 0, ban_reason = NULL, ban_date = NULL, ban_until_date = NULL
             WHERE user_id = ? AND is_banned = 1
            """,
            (user_id,),
        )
        return cursor.rowcount == 1

    @staticmethod
    async def clear_expired_ban(conn: aiosqlite.Connection, user_id: str, now: datetime) -> bool:
        """Lift a ban only if it is still an expired temporary ban.

        A concurrent manual unban or a re-ban with a later end date makes this
        a no-op.
        """
        cursor = await conn.execute(
            """
            UPDATE users
               SET is_banned = 0, ban_reason = NULL, ban_date = NULL, ban_until_date = NULL
             WHERE user_id = ? AND is_banned = 1
               AND ban_until_date IS NOT NULL AND ban_until_date < ?
            """,
            (user_id, to_epoch(now)),
        )
        return cursor.rowcount == 1

    @staticmethod
    async def set_auth_disabled(conn: aiosqlite.Connection, user_id: str, disabled: bool) -> bool:
        cursor = await conn.execute(
            "UPDATE users SET auth_disabled = ? WHERE user_id = ?",
            (1 if disabled else 0, user_id),
        )
        return cursor.rowcount == 1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get(conn: aiosqlite.Connection, user_id: str) -> UserRecord | None:
        cursor = await conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,))
        row = await cursor.fetchone()
        return _row_to_user(row) if row else None

    @staticmethod
    async def get_expired_bans(conn: aiosqlite.Connection, now: datetime) -> List[str]:
        """Return ids of banned users whose temporary ban ended before `now`."""
        cursor = await conn.execute(
            """
            SELECT user_id FROM users
             WHERE is_banned = 1 AND ban_until_date IS NOT NULL AND ban_until_date < ?
             ORDER BY ban_until_date
            """,
            (to_epoch(now),),
        )
        return [row[0] for row in await cursor.fetchall()]

    @staticmethod
    async def count_banned(conn: aiosqlite.Connection) -> int:
        cursor = await conn.execute("SELECT COUNT(*) FROM users WHERE is_banned = 1")
        row = await cursor.fetchone()
        return row[0] if row else 0
