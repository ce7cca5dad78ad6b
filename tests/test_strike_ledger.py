from datetime import timedelta

import pytest

from assetguard.datatypes.audit_datatypes import AuditAction
from assetguard.datatypes.strike_datatypes import WarningCategory
from assetguard.errors import InvalidInput, InvalidState, NotFound
from assetguard.moderation.strike_ledger import StrikeLedger
from assetguard.repositories.warning_repo import WarningRepo


async def _warnings(harness, user_id: str):
    async with harness.db.read() as conn:
        return await WarningRepo.list_for_user(conn, user_id)


@pytest.mark.asyncio
async def test_ban_triggers_on_third_warning_not_before(harness) -> None:
    await harness.auth.register("u1")

    first = await harness.ledger.record_warning("u1", WarningCategory.UPLOAD_ABUSE, "Upload rejected")
    second = await harness.ledger.record_warning("u1", WarningCategory.UPLOAD_ABUSE, "Upload rejected")

    assert (first.strike_count, second.strike_count) == (1, 2)
    assert not first.ban_triggered and not second.ban_triggered
    user = await harness.auth.get("u1")
    assert user.ban.is_banned is False
    assert user.auth_disabled is False

    third = await harness.ledger.record_warning("u1", WarningCategory.UPLOAD_ABUSE, "Upload rejected")

    assert third.strike_count == 3
    assert third.ban_triggered is True
    assert third.ban_until == harness.clock.now + timedelta(days=7)

    user = await harness.auth.get("u1")
    assert user.ban.is_banned is True
    assert user.ban.ban_until_date == harness.clock.now + timedelta(days=7)
    assert user.ban.ban_reason == "Automatic 7-day ban: 3 warnings for upload_abuse"
    assert user.auth_disabled is True

    entries = await harness.audit.query(action=AuditAction.AUTO_BAN_TRIGGERED.value)
    assert len(entries) == 1
    assert entries[0].actor_id == "SYSTEM"
    assert entries[0].target_id == "u1"
    assert entries[0].details["warningCount"] == 3
    assert entries[0].details["banDays"] == 7


@pytest.mark.asyncio
async def test_every_call_creates_a_warning(harness) -> None:
    await harness.auth.register("u1")

    for _ in range(4):
        await harness.ledger.record_warning("u1", WarningCategory.SPAM, "spam", evidence="msg-1")

    warnings = await _warnings(harness, "u1")
    assert len(warnings) == 4
    assert all(w.is_active and w.category is WarningCategory.SPAM for w in warnings)
    assert warnings[0].evidence == "msg-1"


@pytest.mark.asyncio
async def test_categories_are_counted_separately(harness) -> None:
    await harness.auth.register("u1")

    await harness.ledger.record_warning("u1", WarningCategory.UPLOAD_ABUSE, "a")
    await harness.ledger.record_warning("u1", WarningCategory.UPLOAD_ABUSE, "b")
    outcome = await harness.ledger.record_warning("u1", WarningCategory.HARASSMENT, "c")

    assert outcome.strike_count == 1
    assert outcome.ban_triggered is False
    assert (await harness.auth.get("u1")).ban.is_banned is False


@pytest.mark.asyncio
async def test_warning_notifications_count_up(harness) -> None:
    await harness.auth.register("u1")

    for _ in range(3):
        await harness.ledger.record_warning("u1", WarningCategory.UPLOAD_ABUSE, "x")

    notes = await harness.notifications.list_for_user("u1")
    assert [n.title for n in notes] == ["Account Warning", "Account Warning", "Account Temporarily Suspended"]
    assert "(1/3)" in notes[0].body
    assert "(2/3)" in notes[1].body
    assert "7 days" in notes[2].body


@pytest.mark.asyncio
async def test_unknown_user_records_nothing(harness) -> None:
    with pytest.raises(NotFound):
        await harness.ledger.record_warning("ghost", WarningCategory.UPLOAD_ABUSE, "x")

    assert await _warnings(harness, "ghost") == []


@pytest.mark.asyncio
async def test_permanent_ban_is_not_downgraded(harness) -> None:
    await harness.auth.register("u1")
    await harness.ledger.manual_ban("admin-1", "u1", "Fraudulent listings")

    for _ in range(3):
        outcome = await harness.ledger.record_warning("u1", WarningCategory.UPLOAD_ABUSE, "x")

    assert outcome.ban_triggered is False
    user = await harness.auth.get("u1")
    assert user.ban.is_permanent
    assert user.ban.ban_reason == "Fraudulent listings"


@pytest.mark.asyncio
async def test_expiry_sweep_is_idempotent(harness) -> None:
    await harness.auth.register("u1")
    await harness.ledger.manual_ban("admin-1", "u1", "Cooling off period", duration_days=1)
    harness.clock.advance(days=2)

    assert await harness.ledger.expiry_sweep() == 1
    assert await harness.ledger.expiry_sweep() == 0

    user = await harness.auth.get("u1")
    assert user.ban.is_banned is False
    assert user.ban.ban_until_date is None
    assert user.auth_disabled is False

    entries = await harness.audit.query(action=AuditAction.BAN_EXPIRED.value)
    assert len(entries) == 1
    assert entries[0].details == {"autoRestored": True}

    notes = await harness.notifications.list_for_user("u1")
    assert notes[-1].title == "Account Restored"


@pytest.mark.asyncio
async def test_expiry_sweep_leaves_active_and_permanent_bans(harness) -> None:
    for user_id in ("active", "permanent"):
        await harness.auth.register(user_id)
    await harness.ledger.manual_ban("admin-1", "active", "Still serving time", duration_days=30)
    await harness.ledger.manual_ban("admin-1", "permanent", "Never coming back")
    harness.clock.advance(days=2)

    assert await harness.ledger.expiry_sweep() == 0
    assert (await harness.auth.get("active")).ban.is_banned is True
    assert (await harness.auth.get("permanent")).ban.is_banned is True


@pytest.mark.asyncio
async def test_expiry_sweep_isolates_per_user_failures(harness) -> None:
    for user_id in ("bad", "good"):
        await harness.auth.register(user_id)
        await harness.ledger.manual_ban("admin-1", user_id, "Short suspension", duration_days=1)
    harness.clock.advance(days=2)

    class FlakyAuth:
        async def disable(self, user_id: str) -> None:
            await harness.auth.disable(user_id)

        async def enable(self, user_id: str) -> None:
            if user_id == "bad":
                raise RuntimeError("auth backend down")
            await harness.auth.enable(user_id)

    ledger = StrikeLedger(
        harness.db, FlakyAuth(), harness.notifications, harness.audit, clock=harness.clock
    )

    assert await ledger.expiry_sweep() == 1
    assert (await harness.auth.get("good")).auth_disabled is False
    entries = await harness.audit.query(action=AuditAction.BAN_EXPIRED.value)
    assert [e.target_id for e in entries] == ["good"]

    # The failed user keeps its ban so a later sweep picks it up again
    bad = await harness.auth.get("bad")
    assert bad.ban.is_banned is True
    assert bad.auth_disabled is True

    assert await harness.ledger.expiry_sweep() == 1
    bad = await harness.auth.get("bad")
    assert bad.ban.is_banned is False
    assert bad.auth_disabled is False
    assert (await harness.auth.authenticate("bad")).user_id == "bad"


@pytest.mark.asyncio
async def test_expiry_sweep_keeps_login_disabled_when_ban_was_extended(harness) -> None:
    await harness.auth.register("u1")
    await harness.ledger.manual_ban("admin-1", "u1", "Short suspension", duration_days=1)
    harness.clock.advance(days=2)

    class RebanningAuth:
        """Extends the ban to permanent between the candidate query and the clear."""

        async def disable(self, user_id: str) -> None:
            await harness.auth.disable(user_id)

        async def enable(self, user_id: str) -> None:
            await harness.auth.enable(user_id)
            async with harness.db.transaction() as conn:
                await conn.execute("UPDATE users SET ban_until_date = NULL WHERE user_id = ?", (user_id,))

    ledger = StrikeLedger(harness.db, RebanningAuth(), harness.notifications, harness.audit, clock=harness.clock)

    assert await ledger.expiry_sweep() == 0
    record = await harness.auth.get("u1")
    assert record.ban.is_banned is True
    assert record.auth_disabled is True


@pytest.mark.asyncio
async def test_manual_ban_validates_reason(harness) -> None:
    await harness.auth.register("u1")

    with pytest.raises(InvalidInput):
        await harness.ledger.manual_ban("admin-1", "u1", "bad")

    assert (await harness.auth.get("u1")).ban.is_banned is False


@pytest.mark.asyncio
async def test_manual_ban_unknown_user(harness) -> None:
    with pytest.raises(NotFound):
        await harness.ledger.manual_ban("admin-1", "ghost", "Valid reason here")


@pytest.mark.asyncio
async def test_manual_ban_and_unban_are_audited(harness) -> None:
    await harness.auth.register("u1")

    record = await harness.ledger.manual_ban("admin-1", "u1", "Repeated spam")
    assert record.is_permanent
    assert (await harness.auth.get("u1")).auth_disabled is True

    await harness.ledger.manual_unban("admin-1", "u1")
    user = await harness.auth.get("u1")
    assert user.ban.is_banned is False
    assert user.auth_disabled is False

    banned = await harness.audit.query(action=AuditAction.USER_BANNED.value)
    assert banned[0].actor_id == "admin-1"
    assert banned[0].details == {"reason": "Repeated spam", "durationDays": "permanent"}
    assert len(await harness.audit.query(action=AuditAction.USER_UNBANNED.value)) == 1


@pytest.mark.asyncio
async def test_manual_unban_of_unbanned_user_is_invalid(harness) -> None:
    await harness.auth.register("u1")

    with pytest.raises(InvalidState):
        await harness.ledger.manual_unban("admin-1", "u1")
