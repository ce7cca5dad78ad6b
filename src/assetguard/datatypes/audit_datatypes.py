"""
Audit trail types.

``AuditAction`` enumerates the tags written by the core. The ``action`` column
itself is an open string so collaborators may record their own tags.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

SYSTEM_ACTOR = "SYSTEM"


class AuditAction(Enum):
    """Audit tags emitted by the moderation core."""

    ASSET_CREATED = "ASSET_CREATED"
    ASSET_PUBLISHED = "ASSET_PUBLISHED"
    ASSET_DOWNLOADED = "ASSET_DOWNLOADED"
    UPLOAD_REJECTED_NSFW = "UPLOAD_REJECTED_NSFW"
    UPLOAD_REJECTED_NSFW_TEXT = "UPLOAD_REJECTED_NSFW_TEXT"
    UPLOAD_REJECTED_INVALID_IMAGE = "UPLOAD_REJECTED_INVALID_IMAGE"
    UPLOAD_REJECTED_VERIFICATION_FAILED = "UPLOAD_REJECTED_VERIFICATION_FAILED"
    MANUAL_NSFW_SCAN = "MANUAL_NSFW_SCAN"
    AUTO_BAN_TRIGGERED = "AUTO_BAN_TRIGGERED"
    BAN_EXPIRED = "BAN_EXPIRED"
    USER_BANNED = "USER_BANNED"
    USER_UNBANNED = "USER_UNBANNED"

    def __str__(self) -> str:
        return self.value


REJECTION_ACTIONS = frozenset(
    {
        AuditAction.UPLOAD_REJECTED_NSFW.value,
        AuditAction.UPLOAD_REJECTED_NSFW_TEXT.value,
        AuditAction.UPLOAD_REJECTED_INVALID_IMAGE.value,
        AuditAction.UPLOAD_REJECTED_VERIFICATION_FAILED.value,
    }
)

CRITICAL_ACTIONS = frozenset(
    {
        AuditAction.USER_BANNED.value,
        AuditAction.USER_UNBANNED.value,
        AuditAction.AUTO_BAN_TRIGGERED.value,
    }
    | REJECTION_ACTIONS
)


class AuditStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class AuditLogEntry:
    """Append-only audit record. Never mutated after creation."""

    entry_id: int
    timestamp: datetime
    actor_id: str
    action: str
    target_id: str
    details: Dict[str, Any] = field(default_factory=dict)
    status: AuditStatus = AuditStatus.SUCCESS
    ip_address: str | None = None
    user_agent: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.entry_id,
            "timestamp": self.timestamp.isoformat(),
            "actorId": self.actor_id,
            "action": self.action,
            "targetId": self.target_id,
            "details": self.details,
            "status": self.status.value,
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
        }


@dataclass(slots=True)
class SuspiciousActivityReport:
    """Abuse-pattern findings for one user."""

    user_id: str
    alerts: List[str] = field(default_factory=list)

    @property
    def suspicious(self) -> bool:
        return bool(self.alerts)
