"""
Per-upload moderation decision pipeline.

Stages run strictly in order, cheapest first:

1. Precondition: the asset needs a valid absolute image URL, else reject.
2. Text: name, description and tags are each checked. All three are always
   evaluated so the audit entry carries every verdict; the first flagged
   field supplies the rejection reason and the image stage is skipped.
3. Image: any failure of the image check rejects (fail-closed); a flagged verdict
   rejects with its reason and confidence.
4. Otherwise publish, keeping the image confidence for the audit trail.

The decision is only acted on if the asset's conditional terminal transition
succeeds, so redelivered triggers produce no second warning and no second
audit entry.
"""

from __future__ import annotations

from typing import Any, Dict, List

from assetguard.datatypes.asset_datatypes import Asset, AssetStatus
from assetguard.datatypes.audit_datatypes import SYSTEM_ACTOR, AuditAction
from assetguard.datatypes.moderation_datatypes import (
    DecisionOutcome,
    ModerationDecision,
    ModerationVerdict,
)
from assetguard.datatypes.strike_datatypes import WarningCategory
from assetguard.errors import ClassifierError, InvalidInput
from assetguard.moderation.asset_lifecycle import AssetLifecycle
from assetguard.moderation.audit_trail import AuditTrail
from assetguard.moderation.strike_ledger import StrikeLedger
from assetguard.services.interfaces import ImageCheck, TextCheck
from assetguard.util.logger import get_logger
from assetguard.util.url_utils import is_valid_image_url

logger = get_logger("moderation_pipeline")

INVALID_IMAGE_REASON = "missing/invalid image"
VERIFICATION_FAILED_REASON = "Upload verification failed. Please try again."


class ModerationPipeline:
    """Decides publish or reject for assets in ``uploading``.

    Args:
        lifecycle: Asset store and state machine.
        ledger: Strike ledger charged once per rejection.
        audit: Audit trail receiving one entry per decision.
        image_check: Fail-closed image classifier.
        text_check: Fail-open text classifier.
    """

    def __init__(
        self,
        lifecycle: AssetLifecycle,
        ledger: StrikeLedger,
        audit: AuditTrail,
        image_check: ImageCheck,
        text_check: TextCheck,
    ) -> None:
        self._lifecycle = lifecycle
        self._ledger = ledger
        self._audit = audit
        self._image_check = image_check
        self._text_check = text_check

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    async def process_asset(self, asset_id: str) -> ModerationDecision | None:
        """Run the pipeline for one asset-created event.

        Safe to call repeatedly for the same asset: anything no longer in
        ``uploading`` is skipped.

        Returns:
            The applied decision, or None if nothing was applied.
        """
        asset = await self._lifecycle.get(asset_id)
        if asset is None:
            logger.warning("[PIPELINE] Asset %s not found, skipping", asset_id)
            return None
        if asset.status is not AssetStatus.UPLOADING:
            logger.debug("[PIPELINE] Asset %s is %s, skipping", asset_id, asset.status)
            return None

        decision = await self.evaluate(asset)

        if not await self._lifecycle.apply_decision(asset.asset_id, decision):
            return None

        if decision.is_rejected:
            await self._record_strike(asset, decision)

        await self._audit.append(
            SYSTEM_ACTOR,
            decision.audit_action,
            asset.asset_id,
            self._audit_details(asset, decision),
        )
        logger.info(
            "[PIPELINE] Asset %s %s (confidence=%.2f) %s",
            asset.asset_id,
            "rejected" if decision.is_rejected else "published",
            decision.confidence,
            decision.reason,
        )
        return decision

    async def evaluate(self, asset: Asset) -> ModerationDecision:
        """Compute the decision for `asset` without touching any state."""
        if not is_valid_image_url(asset.image_url):
            return ModerationDecision(
                outcome=DecisionOutcome.REJECT,
                reason=INVALID_IMAGE_REASON,
                confidence=0.0,
                category="invalid_image",
                audit_action=AuditAction.UPLOAD_REJECTED_INVALID_IMAGE.value,
            )

        verdicts = await self._text_stage(asset)
        flagged = next((v for v in verdicts if v.is_flagged), None)
        if flagged is not None:
            return ModerationDecision(
                outcome=DecisionOutcome.REJECT,
                reason=flagged.reason,
                confidence=flagged.confidence,
                category=flagged.category,
                audit_action=AuditAction.UPLOAD_REJECTED_NSFW_TEXT.value,
                verdicts=verdicts,
            )

        try:
            image_verdict = await self._image_check.check(asset.image_url)
        except (ClassifierError, InvalidInput) as exc:
            logger.warning("[PIPELINE] Image check failed for asset %s: %s", asset.asset_id, exc)
            return self._verification_failed(verdicts)
        except Exception:
            logger.exception("[PIPELINE] Unexpected image check error for asset %s", asset.asset_id)
            return self._verification_failed(verdicts)

        verdicts.append(image_verdict)
        if image_verdict.is_flagged:
            return ModerationDecision(
                outcome=DecisionOutcome.REJECT,
                reason=image_verdict.reason,
                confidence=image_verdict.confidence,
                category=image_verdict.category,
                audit_action=AuditAction.UPLOAD_REJECTED_NSFW.value,
                verdicts=verdicts,
            )

        return ModerationDecision(
            outcome=DecisionOutcome.PUBLISH,
            reason="",
            confidence=image_verdict.confidence,
            category=image_verdict.category,
            audit_action=AuditAction.ASSET_PUBLISHED.value,
            verdicts=verdicts,
        )

    # ------------------------------------------------------------------
    # Administrative re-scan
    # ------------------------------------------------------------------

    async def rescan(self, asset: Asset) -> ModerationVerdict:
        """Run only the image stage against the asset's current image.

        Read-only: the asset's status is not changed. Classifier errors
        propagate to the caller.
        """
        return await self._image_check.check(asset.image_url)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _text_stage(self, asset: Asset) -> List[ModerationVerdict]:
        fields = (
            ("name", asset.name),
            ("description", asset.description),
            ("tags", asset.tags_text),
        )
        verdicts: List[ModerationVerdict] = []
        for label, text in fields:
            verdict = await self._text_check.check(text, label)
            if verdict.degraded:
                logger.warning("[PIPELINE] Text check degraded for %s of asset %s", label, asset.asset_id)
            verdicts.append(verdict)
        return verdicts

    @staticmethod
    def _verification_failed(verdicts: List[ModerationVerdict]) -> ModerationDecision:
        return ModerationDecision(
            outcome=DecisionOutcome.REJECT,
            reason=VERIFICATION_FAILED_REASON,
            confidence=0.0,
            category="verification_failed",
            audit_action=AuditAction.UPLOAD_REJECTED_VERIFICATION_FAILED.value,
            verdicts=verdicts,
        )

    async def _record_strike(self, asset: Asset, decision: ModerationDecision) -> None:
        try:
            await self._ledger.record_warning(
                asset.author_id,
                WarningCategory.UPLOAD_ABUSE,
                f"Upload rejected: {decision.reason}",
                evidence=asset.image_url or None,
            )
        except Exception:
            logger.exception("[PIPELINE] Failed to record strike for %s on asset %s", asset.author_id, asset.asset_id)

    @staticmethod
    def _audit_details(asset: Asset, decision: ModerationDecision) -> Dict[str, Any]:
        return {
            "assetName": asset.name,
            "authorId": asset.author_id,
            "outcome": decision.outcome.value,
            "reason": decision.reason,
            "confidence": decision.confidence,
            "category": decision.category,
            "verdicts": [verdict.to_dict() for verdict in decision.verdicts],
        }
