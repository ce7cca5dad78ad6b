"""
SQLite-backed principal store.

Holds the login switch the strike ledger toggles, and the authentication
check that turns a banned or disabled account into :class:`AccountSuspended`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from assetguard.database.db_connection import ConnectionManager
from assetguard.datatypes.principal_datatypes import Principal, Role
from assetguard.errors import AccountSuspended, NotFound
from assetguard.repositories.user_repo import UserRecord, UserRepo
from assetguard.util.logger import get_logger
from assetguard.util.time_utils import utc_now

logger = get_logger("auth_principal_service")


class SqliteAuthPrincipalStore:
    """Principal store over the ``users`` table."""

    def __init__(self, db: ConnectionManager, clock: Callable[[], datetime] = utc_now) -> None:
        self._db = db
        self._clock = clock

    async def register(self, user_id: str, display_name: str = "", role: Role = Role.MEMBER) -> UserRecord:
        """Create the user, or update name and role if it already exists."""
        async with self._db.transaction() as conn:
            await UserRepo.upsert(conn, user_id, display_name, role, self._clock())
            record = await UserRepo.get(conn, user_id)
        return record

    async def get(self, user_id: str) -> UserRecord | None:
        async with self._db.read() as conn:
            return await UserRepo.get(conn, user_id)

    async def disable(self, user_id: str) -> None:
        async with self._db.transaction() as conn:
            if not await UserRepo.set_auth_disabled(conn, user_id, True):
                raise NotFound(f"user {user_id} not found")
        logger.info("[AUTH] Disabled login for %s", user_id)

    async def enable(self, user_id: str) -> None:
        async with self._db.transaction() as conn:
            if not await UserRepo.set_auth_disabled(conn, user_id, False):
                raise NotFound(f"user {user_id} not found")
        logger.info("[AUTH] Enabled login for %s", user_id)

    async def authenticate(self, user_id: str) -> Principal:
        """Resolve `user_id` to a principal.

        Raises:
            NotFound: Unknown user.
            AccountSuspended: The user is banned or login is disabled.
        """
        record = await self.get(user_id)
        if record is None:
            raise NotFound(f"user {user_id} not found")
        if record.ban.is_banned:
            raise AccountSuspended(record.ban.ban_reason, record.ban.ban_until_date)
        if record.auth_disabled:
            raise AccountSuspended(None)
        return Principal(user_id=record.user_id, role=record.role)
