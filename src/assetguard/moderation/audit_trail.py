"""
Append-only audit trail.

Writes are best-effort: :meth:`AuditTrail.append` never raises, so a failing
audit store cannot block or roll back the business transition it describes.
Reads back the trail for oversight and flags abuse patterns per user.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List

from assetguard.database.db_connection import ConnectionManager
from assetguard.datatypes.audit_datatypes import (
    CRITICAL_ACTIONS,
    AuditAction,
    AuditLogEntry,
    AuditStatus,
    SuspiciousActivityReport,
)
from assetguard.repositories.audit_log_repo import AuditLogRepo
from assetguard.util.logger import get_logger
from assetguard.util.time_utils import utc_now

logger = get_logger("audit_trail")

DEFAULT_QUERY_LIMIT = 100

FAILED_ACTIONS_LIMIT = 20
UPLOAD_BURST_LIMIT = 20
NSFW_REJECTION_LIMIT = 3


class AuditTrail:
    """Records and retrieves audit entries.

    Args:
        db: Shared connection manager.
        clock: Source of the current UTC time.
    """

    def __init__(self, db: ConnectionManager, clock: Callable[[], datetime] = utc_now) -> None:
        self._db = db
        self._clock = clock

    async def append(
        self,
        actor_id: str,
        action: AuditAction | str,
        target_id: str,
        details: Dict[str, Any] | None = None,
        status: AuditStatus = AuditStatus.SUCCESS,
        *,
        sensitive: bool = False,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> int | None:
        """Append one entry. Returns its id, or None if the write failed.

        Client network details are kept only for sensitive entries.
        """
        action_tag = str(action)
        try:
            async with self._db.transaction() as conn:
                entry_id = await AuditLogRepo.insert(
                    conn,
                    timestamp=self._clock(),
                    actor_id=actor_id,
                    action=action_tag,
                    target_id=target_id,
                    details=details or {},
                    status=status,
                    ip_address=ip_address if sensitive else None,
                    user_agent=user_agent if sensitive else None,
                )
        except Exception:
            logger.exception("[AUDIT] Failed to record %s on %s by %s", action_tag, target_id, actor_id)
            return None

        if action_tag in CRITICAL_ACTIONS:
            logger.warning("CRITICAL AUDIT: %s - Actor: %s, Target: %s", action_tag, actor_id, target_id)
        else:
            logger.debug("[AUDIT] %s by %s on %s", action_tag, actor_id, target_id)
        return entry_id

    async def query(
        self,
        *,
        action: str | None = None,
        actor_id: str | None = None,
        target_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> List[AuditLogEntry]:
        """Filtered entries, newest first."""
        async with self._db.read() as conn:
            return await AuditLogRepo.query(
                conn,
                action=action,
                actor_id=actor_id,
                target_id=target_id,
                start=start,
                end=end,
                limit=limit,
            )

    async def export(self, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        """Every entry in [start, end] as plain dicts, newest first."""
        async with self._db.read() as conn:
            entries = await AuditLogRepo.query(conn, start=start, end=end)
        logger.info("[AUDIT] Exported %d entries between %s and %s", len(entries), start, end)
        return [entry.to_dict() for entry in entries]

    async def check_suspicious_activity(self, user_id: str) -> SuspiciousActivityReport:
        """Look for abuse patterns attributed to `user_id`.

        * more than 20 failed actions in the last 24 hours
        * more than 20 uploads in the last hour
        * 3 or more NSFW rejections of the user's assets in the last 24 hours
        """
        now = self._clock()
        day_ago = now - timedelta(hours=24)
        hour_ago = now - timedelta(hours=1)
        report = SuspiciousActivityReport(user_id=user_id)

        async with self._db.read() as conn:
            failed = await AuditLogRepo.count(conn, since=day_ago, actor_id=user_id, status=AuditStatus.FAILED)
            uploads = await AuditLogRepo.count(
                conn, since=hour_ago, actor_id=user_id, action=AuditAction.ASSET_CREATED.value
            )
            rejections = await AuditLogRepo.count_rejections_for_author(
                conn,
                user_id,
                [AuditAction.UPLOAD_REJECTED_NSFW.value, AuditAction.UPLOAD_REJECTED_NSFW_TEXT.value],
                since=day_ago,
            )

        if failed > FAILED_ACTIONS_LIMIT:
            report.alerts.append(f"Excessive failed actions: {failed} in 24h")
        if uploads > UPLOAD_BURST_LIMIT:
            report.alerts.append(f"Upload burst: {uploads} assets in 1h")
        if rejections >= NSFW_REJECTION_LIMIT:
            report.alerts.append(f"Repeated NSFW rejections: {rejections} in 24h")

        if report.suspicious:
            logger.warning("[AUDIT] Suspicious activity for %s: %s", user_id, "; ".join(report.alerts))
        return report
