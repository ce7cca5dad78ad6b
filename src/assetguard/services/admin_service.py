"""
Administrative operations.

Every method checks the caller's role before touching any state and raises
:class:`AuthorizationDenied` otherwise; other errors propagate typed so the
caller can render them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from assetguard.datatypes.audit_datatypes import AuditAction, AuditLogEntry, SuspiciousActivityReport
from assetguard.datatypes.moderation_datatypes import ModerationVerdict
from assetguard.datatypes.principal_datatypes import Principal, Role
from assetguard.datatypes.strike_datatypes import BanRecord
from assetguard.errors import AuthorizationDenied
from assetguard.moderation.asset_lifecycle import AssetLifecycle
from assetguard.moderation.audit_trail import DEFAULT_QUERY_LIMIT, AuditTrail
from assetguard.moderation.moderation_pipeline import ModerationPipeline
from assetguard.moderation.strike_ledger import StrikeLedger
from assetguard.util.logger import get_logger

logger = get_logger("admin_service")

RESCAN_ROLES = (Role.ADMIN, Role.FOUNDER)
BAN_ROLES = (Role.ADMIN, Role.FOUNDER, Role.SUPPORT)
UNBAN_ROLES = (Role.ADMIN, Role.FOUNDER)
AUDIT_ROLES = (Role.ADMIN, Role.FOUNDER)


def require_role(principal: Principal, roles: tuple[Role, ...], operation: str) -> None:
    if not principal.has_role(*roles):
        logger.warning("[ADMIN] %s (%s) denied %s", principal.user_id, principal.role, operation)
        raise AuthorizationDenied(
            f"{operation} requires one of: {', '.join(str(role) for role in roles)}"
        )


class AdminService:
    """Role-gated entry points for moderators and oversight."""

    def __init__(
        self,
        lifecycle: AssetLifecycle,
        pipeline: ModerationPipeline,
        ledger: StrikeLedger,
        audit: AuditTrail,
    ) -> None:
        self._lifecycle = lifecycle
        self._pipeline = pipeline
        self._ledger = ledger
        self._audit = audit

    async def manual_rescan(self, principal: Principal, asset_id: str) -> ModerationVerdict:
        """Re-run the image check on an asset in any state and return the verdict."""
        require_role(principal, RESCAN_ROLES, "manual rescan")
        asset = await self._lifecycle.require(asset_id)
        verdict = await self._pipeline.rescan(asset)
        await self._audit.append(
            principal.user_id,
            AuditAction.MANUAL_NSFW_SCAN,
            asset_id,
            {"status": str(asset.status), **verdict.to_dict()},
        )
        return verdict

    async def ban_user(
        self,
        principal: Principal,
        user_id: str,
        reason: str,
        duration_days: int | None = None,
    ) -> BanRecord:
        require_role(principal, BAN_ROLES, "ban user")
        return await self._ledger.manual_ban(principal.user_id, user_id, reason, duration_days)

    async def unban_user(self, principal: Principal, user_id: str) -> None:
        require_role(principal, UNBAN_ROLES, "unban user")
        await self._ledger.manual_unban(principal.user_id, user_id)

    async def audit_logs(
        self,
        principal: Principal,
        *,
        action: str | None = None,
        actor_id: str | None = None,
        target_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> List[AuditLogEntry]:
        require_role(principal, AUDIT_ROLES, "read audit logs")
        return await self._audit.query(
            action=action,
            actor_id=actor_id,
            target_id=target_id,
            start=start,
            end=end,
            limit=limit,
        )

    async def export_audit_logs(self, principal: Principal, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        require_role(principal, AUDIT_ROLES, "export audit logs")
        return await self._audit.export(start, end)

    async def suspicious_activity(self, principal: Principal, user_id: str) -> SuspiciousActivityReport:
        require_role(principal, AUDIT_ROLES, "check suspicious activity")
        return await self._audit.check_suspicious_activity(user_id)
