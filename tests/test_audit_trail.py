import sqlite3
from datetime import timedelta
from unittest.mock import patch

import pytest

from assetguard.database.db_connection import ConnectionManager
from assetguard.datatypes.audit_datatypes import AuditAction, AuditStatus
from assetguard.moderation.audit_trail import AuditTrail


@pytest.mark.asyncio
async def test_append_and_query_newest_first(harness) -> None:
    first = await harness.audit.append("SYSTEM", AuditAction.ASSET_PUBLISHED, "a1", {"confidence": 0.1})
    harness.clock.advance(minutes=1)
    second = await harness.audit.append("SYSTEM", AuditAction.UPLOAD_REJECTED_NSFW, "a2")

    assert first is not None and second is not None
    entries = await harness.audit.query()
    assert [e.entry_id for e in entries] == [second, first]
    assert entries[1].details == {"confidence": 0.1}
    assert entries[0].status is AuditStatus.SUCCESS


@pytest.mark.asyncio
async def test_query_filters(harness) -> None:
    await harness.audit.append("admin-1", AuditAction.USER_BANNED, "u1")
    harness.clock.advance(hours=2)
    await harness.audit.append("admin-2", AuditAction.USER_BANNED, "u2")
    await harness.audit.append("admin-2", AuditAction.USER_UNBANNED, "u2")

    assert len(await harness.audit.query(action="USER_BANNED")) == 2
    assert len(await harness.audit.query(actor_id="admin-2")) == 2
    assert len(await harness.audit.query(target_id="u1")) == 1
    recent = await harness.audit.query(start=harness.clock.now - timedelta(hours=1))
    assert {e.target_id for e in recent} == {"u2"}
    assert len(await harness.audit.query(limit=1)) == 1


@pytest.mark.asyncio
async def test_network_details_only_kept_for_sensitive_entries(harness) -> None:
    await harness.audit.append("u1", "LOGIN", "u1", ip_address="10.0.0.1", user_agent="curl")
    await harness.audit.append(
        "admin-1", AuditAction.USER_BANNED, "u1", sensitive=True, ip_address="10.0.0.2", user_agent="browser"
    )

    plain = (await harness.audit.query(action="LOGIN"))[0]
    sensitive = (await harness.audit.query(action="USER_BANNED"))[0]
    assert plain.ip_address is None and plain.user_agent is None
    assert sensitive.ip_address == "10.0.0.2"
    assert sensitive.user_agent == "browser"


@pytest.mark.asyncio
async def test_append_failure_is_swallowed() -> None:
    trail = AuditTrail(ConnectionManager())

    assert await trail.append("SYSTEM", AuditAction.ASSET_PUBLISHED, "a1") is None


@pytest.mark.asyncio
async def test_entries_cannot_be_modified_or_deleted(harness) -> None:
    entry_id = await harness.audit.append("SYSTEM", AuditAction.ASSET_PUBLISHED, "a1")

    with pytest.raises(sqlite3.DatabaseError):
        async with harness.db.transaction() as conn:
            await conn.execute("UPDATE audit_logs SET action = 'TAMPERED' WHERE entry_id = ?", (entry_id,))

    with pytest.raises(sqlite3.DatabaseError):
        async with harness.db.transaction() as conn:
            await conn.execute("DELETE FROM audit_logs WHERE entry_id = ?", (entry_id,))

    entries = await harness.audit.query()
    assert [e.action for e in entries] == ["ASSET_PUBLISHED"]


@pytest.mark.asyncio
async def test_export_returns_plain_dicts(harness) -> None:
    start = harness.clock.now
    await harness.audit.append("SYSTEM", AuditAction.BAN_EXPIRED, "u1", {"autoRestored": True})

    exported = await harness.audit.export(start, start + timedelta(minutes=5))

    assert len(exported) == 1
    assert exported[0]["action"] == "BAN_EXPIRED"
    assert exported[0]["targetId"] == "u1"
    assert exported[0]["details"] == {"autoRestored": True}
    assert exported[0]["status"] == "success"


@pytest.mark.asyncio
async def test_clean_user_is_not_suspicious(harness) -> None:
    await harness.audit.append("u1", AuditAction.ASSET_CREATED, "a1")

    report = await harness.audit.check_suspicious_activity("u1")

    assert report.suspicious is False
    assert report.alerts == []


@pytest.mark.asyncio
async def test_repeated_nsfw_rejections_are_suspicious(harness) -> None:
    for n in range(3):
        asset = await harness.lifecycle.create_asset("u1", f"asset {n}", "", "https://cdn.example.com/x.png")
        await harness.audit.append("SYSTEM", AuditAction.UPLOAD_REJECTED_NSFW, asset.asset_id)

    report = await harness.audit.check_suspicious_activity("u1")

    assert report.suspicious is True
    assert any("NSFW" in alert for alert in report.alerts)


@pytest.mark.asyncio
async def test_upload_burst_and_failures_are_suspicious(harness) -> None:
    for n in range(21):
        await harness.audit.append("u1", AuditAction.ASSET_CREATED, f"a{n}")
        await harness.audit.append("u1", "LOGIN", "u1", status=AuditStatus.FAILED)

    report = await harness.audit.check_suspicious_activity("u1")

    assert len(report.alerts) == 2


@pytest.mark.asyncio
async def test_old_activity_is_not_counted(harness) -> None:
    for n in range(21):
        await harness.audit.append("u1", AuditAction.ASSET_CREATED, f"a{n}")
    harness.clock.advance(hours=2)

    report = await harness.audit.check_suspicious_activity("u1")

    assert report.suspicious is False


@pytest.mark.asyncio
async def test_critical_actions_log_a_warning(harness) -> None:
    with patch("assetguard.moderation.audit_trail.logger") as audit_logger:
        await harness.audit.append("admin-1", AuditAction.USER_BANNED, "u1", sensitive=True)
        await harness.audit.append("SYSTEM", AuditAction.ASSET_PUBLISHED, "a1")

    audit_logger.warning.assert_called_once()
    fmt, *args = audit_logger.warning.call_args.args
    assert fmt % tuple(args) == "CRITICAL AUDIT: USER_BANNED - Actor: admin-1, Target: u1"
