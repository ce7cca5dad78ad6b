"""
Strike ledger types: warnings, the embedded ban record and warning outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class WarningCategory(Enum):
    """Closed set of violation categories a strike can be recorded under."""

    UPLOAD_ABUSE = "upload_abuse"
    SPAM = "spam"
    HARASSMENT = "harassment"
    RULE_VIOLATION = "rule_violation"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class StrikeWarning:
    """One recorded strike against a user.

    Warnings are never deleted; ``is_active`` is the only soft state.
    """

    warning_id: int
    user_id: str
    category: WarningCategory
    message: str
    evidence: str | None
    is_active: bool
    created_at: datetime


@dataclass(slots=True)
class BanRecord:
    """Suspension state embedded in the user entity.

    ``ban_until_date`` of None means a permanent ban; a date in the past on a
    banned user is stale until the expiry sweep clears it.
    """

    is_banned: bool = False
    ban_reason: str | None = None
    ban_date: datetime | None = None
    ban_until_date: datetime | None = None

    @property
    def is_permanent(self) -> bool:
        return self.is_banned and self.ban_until_date is None

    def is_expired(self, now: datetime | None = None) -> bool:
        """True for a temporary ban whose end date has already passed."""
        if not self.is_banned or self.ban_until_date is None:
            return False
        return self.ban_until_date < (now or datetime.now(timezone.utc))


@dataclass(slots=True)
class WarningOutcome:
    """Result of :meth:`StrikeLedger.record_warning`.

    Attributes:
        warning: The warning that was just created.
        strike_count: Active warnings for (user, category), including this one.
        threshold: Configured strike count that triggers a ban.
        ban_triggered: True when this warning triggered an automatic ban.
        ban_until: End of the automatic ban, if one was triggered.
    """

    warning: StrikeWarning
    strike_count: int
    threshold: int
    ban_triggered: bool = False
    ban_until: datetime | None = None
