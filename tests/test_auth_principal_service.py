from datetime import timedelta

import pytest

from assetguard.datatypes.principal_datatypes import Role
from assetguard.errors import AccountSuspended, NotFound


@pytest.mark.asyncio
async def test_authenticate_active_user(harness) -> None:
    await harness.auth.register("u1", "Una", Role.PARTNER)

    principal = await harness.auth.authenticate("u1")

    assert principal.user_id == "u1"
    assert principal.role is Role.PARTNER


@pytest.mark.asyncio
async def test_register_updates_role(harness) -> None:
    await harness.auth.register("u1")
    record = await harness.auth.register("u1", "Una", Role.ADMIN)

    assert record.role is Role.ADMIN
    assert record.display_name == "Una"


@pytest.mark.asyncio
async def test_authenticate_unknown_user(harness) -> None:
    with pytest.raises(NotFound):
        await harness.auth.authenticate("ghost")


@pytest.mark.asyncio
async def test_banned_user_gets_suspension_message(harness) -> None:
    await harness.auth.register("u1")
    await harness.ledger.manual_ban("admin-1", "u1", "Selling stolen assets", duration_days=2)

    with pytest.raises(AccountSuspended) as excinfo:
        await harness.auth.authenticate("u1")

    assert excinfo.value.reason == "Selling stolen assets"
    assert excinfo.value.until == harness.clock.now + timedelta(days=2)
    assert "Selling stolen assets" in str(excinfo.value)


@pytest.mark.asyncio
async def test_disabled_login_is_suspended(harness) -> None:
    await harness.auth.register("u1")
    await harness.auth.disable("u1")

    with pytest.raises(AccountSuspended):
        await harness.auth.authenticate("u1")

    await harness.auth.enable("u1")
    assert (await harness.auth.authenticate("u1")).user_id == "u1"


@pytest.mark.asyncio
async def test_toggle_unknown_user(harness) -> None:
    with pytest.raises(NotFound):
        await harness.auth.disable("ghost")
