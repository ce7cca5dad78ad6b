"""
Strike ledger: per-user, per-category warnings with automatic suspension.

Counting is exact. The new warning is inserted and the active count read back
inside the same serialised write transaction, so two concurrent violations
for the same user can never both observe a count below the threshold.

``record_warning`` is deliberately not idempotent: every call is a new strike,
and callers must invoke it at most once per violation.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

from assetguard.database.db_connection import ConnectionManager
from assetguard.datatypes.audit_datatypes import SYSTEM_ACTOR, AuditAction
from assetguard.datatypes.strike_datatypes import BanRecord, WarningCategory, WarningOutcome
from assetguard.errors import InvalidInput, InvalidState, NotFound
from assetguard.moderation.audit_trail import AuditTrail
from assetguard.repositories.user_repo import UserRepo
from assetguard.repositories.warning_repo import WarningRepo
from assetguard.services.interfaces import AuthPrincipalStore, NotificationSink
from assetguard.util.logger import get_logger
from assetguard.util.time_utils import utc_now

logger = get_logger("strike_ledger")

SUPPORT_CONTACT = "support@marketplace.com"
MIN_BAN_REASON_LENGTH = 5


class StrikeLedger:
    """Records strikes and owns every write to a user's ban record.

    Args:
        db: Shared connection manager.
        auth: Login switch toggled on ban and restore.
        notifications: User-facing notification sink.
        audit: Audit trail for ban transitions.
        threshold: Active strikes in one category that trigger a ban.
        ban_duration_days: Length of an automatic ban.
        clock: Source of the current UTC time.
    """

    def __init__(
        self,
        db: ConnectionManager,
        auth: AuthPrincipalStore,
        notifications: NotificationSink,
        audit: AuditTrail,
        *,
        threshold: int = 3,
        ban_duration_days: int = 7,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self._db = db
        self._auth = auth
        self._notifications = notifications
        self._audit = audit
        self._threshold = threshold
        self._ban_duration_days = ban_duration_days
        self._clock = clock

    @property
    def threshold(self) -> int:
        return self._threshold

    # ------------------------------------------------------------------
    # Strikes
    # ------------------------------------------------------------------

    async def record_warning(
        self,
        user_id: str,
        category: WarningCategory,
        message: str,
        evidence: str | None = None,
    ) -> WarningOutcome:
        """Record one strike and ban the user if the category threshold is reached.

        A permanent ban already in place is never replaced by a timed one.

        Raises:
            NotFound: The user does not exist.
        """
        now = self._clock()
        ban_until: datetime | None = None
        ban_reason = f"Automatic {self._ban_duration_days}-day ban: {self._threshold} warnings for {category}"

        async with self._db.transaction() as conn:
            user = await UserRepo.get(conn, user_id)
            if user is None:
                raise NotFound(f"user {user_id} not found")

            warning = await WarningRepo.insert(conn, user_id, category, message, evidence, now)
            count = await WarningRepo.count_active(conn, user_id, category)

            ban_triggered = count >= self._threshold and not user.ban.is_permanent
            if ban_triggered:
                ban_until = now + timedelta(days=self._ban_duration_days)
                await UserRepo.set_ban(conn, user_id, ban_reason, now, ban_until)

        outcome = WarningOutcome(
            warning=warning,
            strike_count=count,
            threshold=self._threshold,
            ban_triggered=ban_triggered,
            ban_until=ban_until,
        )

        if not ban_triggered:
            logger.info("[STRIKES] Warning %d/%d for %s (%s)", count, self._threshold, user_id, category)
            await self._notify(
                user_id,
                "warning",
                "Account Warning",
                f"You have received a warning for {category}. ({count}/{self._threshold}) "
                "Repeated violations will result in suspension.",
            )
            return outcome

        logger.warning("[STRIKES] Auto-ban for %s until %s (%d warnings for %s)", user_id, ban_until, count, category)
        await self._set_login(user_id, enabled=False)
        await self._notify(
            user_id,
            "ban",
            "Account Temporarily Suspended",
            f"Your account has been suspended for {self._ban_duration_days} days due to repeated "
            f"policy violations ({category}). You can appeal at: {SUPPORT_CONTACT}",
        )
        await self._audit.append(
            SYSTEM_ACTOR,
            AuditAction.AUTO_BAN_TRIGGERED,
            user_id,
            {
                "reason": str(category),
                "warningCount": count,
                "banDays": self._ban_duration_days,
                "banUntil": ban_until.isoformat(),
            },
        )
        return outcome

    # ------------------------------------------------------------------
    # Ban expiry
    # ------------------------------------------------------------------

    async def expiry_sweep(self) -> int:
        """Lift every temporary ban whose end date has passed.

        Each user is restored in its own transaction with a conditional clear,
        so a repeated or concurrent sweep restores nobody twice. One user's
        failure is logged and does not stop the rest.

        Returns:
            Number of users restored by this run.
        """
        now = self._clock()
        async with self._db.read() as conn:
            candidates = await UserRepo.get_expired_bans(conn, now)

        if not candidates:
            logger.debug("[EXPIRY SWEEP] No expired bans")
            return 0

        restored = 0
        for user_id in candidates:
            try:
                # Login first: if enabling fails the ban stays and the next sweep retries.
                await self._set_login(user_id, enabled=True)
                async with self._db.transaction() as conn:
                    cleared = await UserRepo.clear_expired_ban(conn, user_id, now)
                    record = None if cleared else await UserRepo.get(conn, user_id)
                if not cleared:
                    # Re-banned or unbanned since the candidate query
                    if record is not None and record.ban.is_banned:
                        await self._set_login(user_id, enabled=False)
                    continue
                await self._notify(
                    user_id,
                    "ban_lifted",
                    "Account Restored",
                    "Your account suspension has been lifted. Welcome back!",
                )
                await self._audit.append(SYSTEM_ACTOR, AuditAction.BAN_EXPIRED, user_id, {"autoRestored": True})
                restored += 1
            except Exception:
                logger.exception("[EXPIRY SWEEP] Failed to restore user %s", user_id)

        logger.info("[EXPIRY SWEEP] Restored %d of %d expired ban(s)", restored, len(candidates))
        return restored

    # ------------------------------------------------------------------
    # Manual bans
    # ------------------------------------------------------------------

    async def manual_ban(
        self,
        actor_id: str,
        user_id: str,
        reason: str,
        duration_days: int | None = None,
    ) -> BanRecord:
        """Ban a user directly. ``duration_days`` of None means permanent.

        Raises:
            InvalidInput: Reason too short or non-positive duration.
            NotFound: The user does not exist.
        """
        reason = (reason or "").strip()
        if len(reason) < MIN_BAN_REASON_LENGTH:
            raise InvalidInput(f"ban reason must be at least {MIN_BAN_REASON_LENGTH} characters")
        if duration_days is not None and duration_days <= 0:
            raise InvalidInput("ban duration must be a positive number of days")

        now = self._clock()
        ban_until = now + timedelta(days=duration_days) if duration_days else None
        async with self._db.transaction() as conn:
            if not await UserRepo.set_ban(conn, user_id, reason, now, ban_until):
                raise NotFound(f"user {user_id} not found")

        await self._set_login(user_id, enabled=False)
        await self._notify(
            user_id,
            "ban",
            "Account Suspended",
            f"Your account has been suspended. Reason: {reason}. Contact: {SUPPORT_CONTACT}",
        )
        await self._audit.append(
            actor_id,
            AuditAction.USER_BANNED,
            user_id,
            {"reason": reason, "durationDays": duration_days if duration_days else "permanent"},
            sensitive=True,
        )
        return BanRecord(is_banned=True, ban_reason=reason, ban_date=now, ban_until_date=ban_until)

    async def manual_unban(self, actor_id: str, user_id: str) -> None:
        """Lift a ban directly.

        Raises:
            NotFound: The user does not exist.
            InvalidState: The user is not banned.
        """
        async with self._db.transaction() as conn:
            user = await UserRepo.get(conn, user_id)
            if user is None:
                raise NotFound(f"user {user_id} not found")
            if not await UserRepo.clear_ban(conn, user_id):
                raise InvalidState(f"user {user_id} is not banned")

        await self._set_login(user_id, enabled=True)
        await self._notify(
            user_id,
            "ban_lifted",
            "Account Restored",
            "Your account suspension has been lifted. Welcome back!",
        )
        await self._audit.append(actor_id, AuditAction.USER_UNBANNED, user_id, {}, sensitive=True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _set_login(self, user_id: str, *, enabled: bool) -> None:
        if enabled:
            await self._auth.enable(user_id)
        else:
            await self._auth.disable(user_id)

    async def _notify(self, user_id: str, notification_type: str, title: str, message: str) -> None:
        try:
            await self._notifications.append(user_id, notification_type, title, message)
        except Exception:
            logger.exception("[STRIKES] Notification %r to %s failed", title, user_id)
