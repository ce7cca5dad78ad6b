from datetime import datetime, timedelta, timezone

import pytest

from assetguard.datatypes.asset_datatypes import Asset, AssetStatus
from assetguard.datatypes.moderation_datatypes import ModerationVerdict, VerdictSource
from assetguard.datatypes.strike_datatypes import BanRecord
from assetguard.errors import AccountSuspended
from assetguard.util.time_utils import from_epoch, to_epoch
from assetguard.util.url_utils import is_valid_image_url

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


class TestModerationVerdict:
    def test_flagged_verdict_needs_reason(self) -> None:
        with pytest.raises(ValueError):
            ModerationVerdict(source=VerdictSource.IMAGE, is_flagged=True, confidence=0.9, reason="  ")

    @pytest.mark.parametrize("confidence", [-0.1, 1.01])
    def test_confidence_must_be_in_unit_range(self, confidence: float) -> None:
        with pytest.raises(ValueError):
            ModerationVerdict(source=VerdictSource.IMAGE, is_flagged=False, confidence=confidence)

    def test_to_dict(self) -> None:
        verdict = ModerationVerdict(
            source=VerdictSource.TEXT, is_flagged=True, category="sexual", reason="bad", field_label="name"
        )
        assert verdict.to_dict() == {
            "source": "text",
            "isFlagged": True,
            "confidence": 0.0,
            "category": "sexual",
            "reason": "bad",
            "field": "name",
            "degraded": False,
        }


class TestBanRecord:
    def test_permanent_ban_never_expires(self) -> None:
        record = BanRecord(is_banned=True, ban_reason="x", ban_date=NOW)
        assert record.is_permanent
        assert not record.is_expired(NOW + timedelta(days=3650))

    def test_temporary_ban_expiry(self) -> None:
        record = BanRecord(is_banned=True, ban_reason="x", ban_date=NOW, ban_until_date=NOW + timedelta(days=7))
        assert not record.is_expired(NOW + timedelta(days=6))
        assert record.is_expired(NOW + timedelta(days=8))

    def test_unbanned_is_not_expired(self) -> None:
        assert not BanRecord().is_expired(NOW)


def test_asset_tags_text_skips_blanks() -> None:
    asset = Asset("a1", "u1", "n", "d", "https://x/y.png", AssetStatus.UPLOADING, tags=[" camera", "", "  ", "rig"])
    assert asset.tags_text == "camera, rig"


def test_terminal_statuses() -> None:
    assert AssetStatus.PUBLISHED.is_terminal and AssetStatus.REJECTED.is_terminal
    assert not AssetStatus.UPLOADING.is_terminal and not AssetStatus.DRAFT.is_terminal


def test_account_suspended_message() -> None:
    temporary = AccountSuspended("Spam", NOW)
    assert str(temporary) == "Your account has been suspended. Reason: Spam. Suspension ends 2026-03-01 00:00 UTC."
    assert AccountSuspended(None).reason == "Policy violation"


def test_epoch_round_trip_is_utc() -> None:
    assert to_epoch(None) is None and from_epoch(None) is None
    assert from_epoch(to_epoch(NOW)) == NOW
    assert to_epoch(datetime(2026, 3, 1)) == to_epoch(NOW)


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://cdn.example.com/a.png", True),
        ("http://localhost:9000/bucket/a.png", True),
        ("HTTPS://CDN.EXAMPLE.COM/A.PNG", True),
        ("", False),
        (None, False),
        ("cdn.example.com/a.png", False),
        ("javascript:alert(1)", False),
        ("https://cdn.example.com/a b.png", False),
    ],
)
def test_image_url_validation(url, expected: bool) -> None:
    assert is_valid_image_url(url) is expected
