"""
Persistent storage for the append-only audit log.

Only INSERT and SELECT statements live here; the schema's triggers abort any
UPDATE or DELETE against ``audit_logs``.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List

import aiosqlite

from assetguard.datatypes.audit_datatypes import AuditLogEntry, AuditStatus
from assetguard.util.logger import get_logger
from assetguard.util.time_utils import from_epoch, to_epoch

logger = get_logger("audit_log_repo")


def _row_to_entry(row: aiosqlite.Row) -> AuditLogEntry:
    try:
        details = json.loads(row["details"]) if row["details"] else {}
    except json.JSONDecodeError:
        logger.warning("[AUDIT REPO] Unparseable details on entry %s", row["entry_id"])
        details = {}
    return AuditLogEntry(
        entry_id=row["entry_id"],
        timestamp=from_epoch(row["timestamp"]),
        actor_id=row["actor_id"],
        action=row["action"],
        target_id=row["target_id"],
        details=details if isinstance(details, dict) else {"value": details},
        status=AuditStatus(row["status"]),
        ip_address=row["ip_address"],
        user_agent=row["user_agent"],
    )


class AuditLogRepo:
    """Insert and query access to ``audit_logs``."""

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        timestamp: datetime,
        actor_id: str,
        action: str,
        target_id: str,
        details: Dict[str, Any],
        status: AuditStatus,
        ip_address: str | None,
        user_agent: str | None,
    ) -> int:
        cursor = await conn.execute(
            """
            INSERT INTO audit_logs (timestamp, actor_id, action, target_id, details,
                                    status, ip_address, user_agent)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                to_epoch(timestamp),
                actor_id,
                action,
                target_id,
                json.dumps(details, default=str),
                status.value,
                ip_address,
                user_agent,
            ),
        )
        return cursor.lastrowid

    @staticmethod
    async def query(
        conn: aiosqlite.Connection,
        *,
        action: str | None = None,
        actor_id: str | None = None,
        target_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> List[AuditLogEntry]:
        """Return matching entries, newest first."""
        clauses: List[str] = []
        params: List[Any] = []
        if action:
            clauses.append("action = ?")
            params.append(action)
        if actor_id:
            clauses.append("actor_id = ?")
            params.append(actor_id)
        if target_id:
            clauses.append("target_id = ?")
            params.append(target_id)
        if start is not None:
            clauses.append("timestamp >= ?")
            params.append(to_epoch(start))
        if end is not None:
            clauses.append("timestamp <= ?")
            params.append(to_epoch(end))

        sql = "SELECT * FROM audit_logs"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY timestamp DESC, entry_id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        cursor = await conn.execute(sql, params)
        return [_row_to_entry(row) for row in await cursor.fetchall()]

    @staticmethod
    async def count(
        conn: aiosqlite.Connection,
        *,
        since: datetime,
        actor_id: str | None = None,
        target_id: str | None = None,
        action: str | None = None,
        status: AuditStatus | None = None,
    ) -> int:
        clauses = ["timestamp >= ?"]
        params: List[Any] = [to_epoch(since)]
        if actor_id:
            clauses.append("actor_id = ?")
            params.append(actor_id)
        if target_id:
            clauses.append("target_id = ?")
            params.append(target_id)
        if action:
            clauses.append("action = ?")
            params.append(action)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        cursor = await conn.execute(
            "SELECT COUNT(*) FROM audit_logs WHERE " + " AND ".join(clauses),
            params,
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    @staticmethod
    async def count_rejections_for_author(
        conn: aiosqlite.Connection,
        author_id: str,
        actions: List[str],
        since: datetime,
    ) -> int:
        """Count rejection entries whose asset belongs to `author_id`."""
        placeholders = ", ".join("?" for _ in actions)
        cursor = await conn.execute(
            f"""
            SELECT COUNT(*) FROM audit_logs a
              JOIN assets s ON s.asset_id = a.target_id
             WHERE s.author_id = ? AND a.timestamp >= ? AND a.action IN ({placeholders})
            """,
            [author_id, to_epoch(since), *actions],
        )
        row = await cursor.fetchone()
        return row[0] if row else 0
