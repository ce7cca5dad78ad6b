"""
Pytest configuration and fixtures for AssetGuard tests.
"""

import os
import sys
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Keep test runs from writing session logs into the repository
os.environ.setdefault("ASSETGUARD_LOG_DIR", str(Path(tempfile.gettempdir()) / "assetguard-test-logs"))

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from assetguard.database.db_connection import ConnectionManager  # noqa: E402
from assetguard.database.db_schema import SchemaManager  # noqa: E402
from assetguard.datatypes.moderation_datatypes import ModerationVerdict, VerdictSource  # noqa: E402
from assetguard.moderation.asset_lifecycle import AssetLifecycle  # noqa: E402
from assetguard.moderation.audit_trail import AuditTrail  # noqa: E402
from assetguard.moderation.moderation_pipeline import ModerationPipeline  # noqa: E402
from assetguard.moderation.strike_ledger import StrikeLedger  # noqa: E402
from assetguard.services.admin_service import AdminService  # noqa: E402
from assetguard.services.auth_principal_service import SqliteAuthPrincipalStore  # noqa: E402
from assetguard.services.notification_service import SqliteNotificationSink  # noqa: E402

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable replacement for ``utc_now``."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class StubImageCheck:
    """Image check returning a fixed verdict or raising a fixed error."""

    def __init__(self, verdict: ModerationVerdict | None = None, error: Exception | None = None) -> None:
        self.verdict = verdict or ModerationVerdict(
            source=VerdictSource.IMAGE, is_flagged=False, confidence=0.1, category="safe"
        )
        self.error = error
        self.calls: list[str] = []

    async def check(self, image_url: str) -> ModerationVerdict:
        self.calls.append(image_url)
        if self.error is not None:
            raise self.error
        return self.verdict


class StubTextCheck:
    """Text check flagging the configured field labels."""

    def __init__(self, flagged_fields: tuple[str, ...] = (), degraded: bool = False) -> None:
        self.flagged_fields = flagged_fields
        self.degraded = degraded
        self.calls: list[tuple[str | None, str]] = []

    async def check(self, text: str, field_label: str | None = None) -> ModerationVerdict:
        self.calls.append((field_label, text))
        if field_label in self.flagged_fields:
            return ModerationVerdict(
                source=VerdictSource.TEXT,
                is_flagged=True,
                category="sexual",
                reason="Text classified as 'sexual'",
                field_label=field_label,
            )
        if self.degraded:
            return ModerationVerdict(
                source=VerdictSource.TEXT,
                is_flagged=False,
                reason="text classifier request failed: boom",
                field_label=field_label,
                degraded=True,
            )
        return ModerationVerdict(source=VerdictSource.TEXT, is_flagged=False, category="neutral", field_label=field_label)


@dataclass
class Harness:
    db: ConnectionManager
    clock: FakeClock
    audit: AuditTrail
    auth: SqliteAuthPrincipalStore
    notifications: SqliteNotificationSink
    ledger: StrikeLedger
    lifecycle: AssetLifecycle
    image: StubImageCheck
    text: StubTextCheck
    pipeline: ModerationPipeline
    admin: AdminService = field(init=False)

    def __post_init__(self) -> None:
        self.admin = AdminService(self.lifecycle, self.pipeline, self.ledger, self.audit)

    def with_classifiers(self, image=None, text=None) -> "Harness":
        """Swap classifiers, rebuilding the pipeline around them."""
        if image is not None:
            self.image = image
        if text is not None:
            self.text = text
        self.pipeline = ModerationPipeline(self.lifecycle, self.ledger, self.audit, self.image, self.text)
        self.admin = AdminService(self.lifecycle, self.pipeline, self.ledger, self.audit)
        return self


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture()
async def db(tmp_path: Path):
    manager = ConnectionManager()
    await manager.open(tmp_path / "assetguard-test.db")
    await SchemaManager.initialize_schema(manager.connection)
    try:
        yield manager
    finally:
        await manager.close()


@pytest_asyncio.fixture()
async def harness(db: ConnectionManager, clock: FakeClock) -> Harness:
    audit = AuditTrail(db, clock=clock)
    auth = SqliteAuthPrincipalStore(db, clock=clock)
    notifications = SqliteNotificationSink(db, clock=clock)
    ledger = StrikeLedger(db, auth, notifications, audit, threshold=3, ban_duration_days=7, clock=clock)
    lifecycle = AssetLifecycle(db, audit, clock=clock)
    image = StubImageCheck()
    text = StubTextCheck()
    pipeline = ModerationPipeline(lifecycle, ledger, audit, image, text)
    return Harness(
        db=db,
        clock=clock,
        audit=audit,
        auth=auth,
        notifications=notifications,
        ledger=ledger,
        lifecycle=lifecycle,
        image=image,
        text=text,
        pipeline=pipeline,
    )
