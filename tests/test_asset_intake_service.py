import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from assetguard.services.asset_intake_service import AssetIntakeService


def _service(process_asset=None, stale=()):
    pipeline = MagicMock()
    pipeline.process_asset = process_asset or AsyncMock(return_value=None)
    lifecycle = MagicMock()
    lifecycle.find_stale_uploads = AsyncMock(return_value=[SimpleNamespace(asset_id=a) for a in stale])
    return AssetIntakeService(pipeline, lifecycle, stale_after_seconds=60), pipeline, lifecycle


@pytest.mark.asyncio
async def test_submit_runs_pipeline() -> None:
    service, pipeline, _ = _service()

    task = service.submit("a1")
    await task

    pipeline.process_asset.assert_awaited_once_with("a1")
    assert service.in_flight == 0


@pytest.mark.asyncio
async def test_redelivery_while_in_flight_is_dropped() -> None:
    release = asyncio.Event()

    async def _blocking(asset_id: str) -> None:
        await release.wait()

    service, pipeline, _ = _service(process_asset=AsyncMock(side_effect=_blocking))

    first = service.submit("a1")
    assert service.submit("a1") is None
    assert service.in_flight == 1

    release.set()
    await first
    assert pipeline.process_asset.await_count == 1

    # once finished, a new delivery is accepted again
    await service.submit("a1")
    assert pipeline.process_asset.await_count == 2


@pytest.mark.asyncio
async def test_pipeline_errors_are_contained() -> None:
    service, _, _ = _service(process_asset=AsyncMock(side_effect=RuntimeError("database is locked")))

    task = service.submit("a1")
    await task

    assert task.exception() is None


@pytest.mark.asyncio
async def test_reap_resubmits_stale_uploads() -> None:
    service, pipeline, lifecycle = _service(stale=("a1", "a2"))

    assert await service.reap_stale_uploads() == 2
    await service.drain()

    lifecycle.find_stale_uploads.assert_awaited_once_with(60)
    assert {c.args[0] for c in pipeline.process_asset.await_args_list} == {"a1", "a2"}


@pytest.mark.asyncio
async def test_shutdown_cancels_in_flight_runs() -> None:
    started = asyncio.Event()

    async def _forever(asset_id: str) -> None:
        started.set()
        await asyncio.sleep(3600)

    service, _, _ = _service(process_asset=AsyncMock(side_effect=_forever))
    task = service.submit("a1")
    await started.wait()

    await service.shutdown()

    assert task.cancelled()
    assert service.in_flight == 0
