"""
Service wiring.

Builds every component from an :class:`AppConfig` and an open
:class:`ConnectionManager`. Nothing in the core reaches for a module-level
singleton; this is the one place collaborators are constructed and passed in.
"""

from __future__ import annotations

from dataclasses import dataclass

from assetguard.classifiers.image_classifier import ImageClassifier
from assetguard.classifiers.text_classifier import TextClassifier
from assetguard.configuration.app_configuration import AppConfig
from assetguard.database.db_connection import ConnectionManager
from assetguard.moderation.asset_lifecycle import AssetLifecycle
from assetguard.moderation.audit_trail import AuditTrail
from assetguard.moderation.moderation_pipeline import ModerationPipeline
from assetguard.moderation.strike_ledger import StrikeLedger
from assetguard.scheduler.periodic_scheduler import PeriodicTaskScheduler
from assetguard.services.admin_service import AdminService
from assetguard.services.asset_intake_service import AssetIntakeService
from assetguard.services.auth_principal_service import SqliteAuthPrincipalStore
from assetguard.services.interfaces import ImageCheck, TextCheck
from assetguard.services.notification_service import SqliteNotificationSink
from assetguard.util.logger import get_logger

logger = get_logger("runtime")


@dataclass
class Runtime:
    """Every long-lived component of a running instance."""
    config: AppConfig
    db: ConnectionManager
    audit: AuditTrail
    auth: SqliteAuthPrincipalStore
    notifications: SqliteNotificationSink
    ledger: StrikeLedger
    lifecycle: AssetLifecycle
    pipeline: ModerationPipeline
    intake: AssetIntakeService
    admin: AdminService
    expiry_scheduler: PeriodicTaskScheduler
    reaper_scheduler: PeriodicTaskScheduler
    image_check: ImageCheck
    text_check: TextCheck

    def start_schedulers(self) -> None:
        self.expiry_scheduler.start()
        self.reaper_scheduler.start()

    async def shutdown(self) -> None:
        for scheduler in (self.expiry_scheduler, self.reaper_scheduler):
            try:
                await scheduler.shutdown()
            except Exception:
                logger.exception("[RUNTIME] Error stopping %s", scheduler.name)
        await self.intake.shutdown()
        for check in (self.image_check, self.text_check):
            close = getattr(check, "close", None)
            if close is None:
                continue
            try:
                await close()
            except Exception:
                logger.exception("[RUNTIME] Error closing %s", type(check).__name__)


def build_runtime(
    config: AppConfig,
    db: ConnectionManager,
    *,
    image_check: ImageCheck | None = None,
    text_check: TextCheck | None = None,
) -> Runtime:
    """Construct all services. Classifiers may be overridden, e.g. with stubs."""
    moderation = config.moderation

    audit = AuditTrail(db)
    auth = SqliteAuthPrincipalStore(db)
    notifications = SqliteNotificationSink(db)
    ledger = StrikeLedger(
        db,
        auth,
        notifications,
        audit,
        threshold=moderation.warning_ban_threshold,
        ban_duration_days=moderation.ban_duration_days,
    )
    lifecycle = AssetLifecycle(db, audit)

    if image_check is None:
        image_check = ImageClassifier(config.image_classifier, threshold=moderation.image_confidence_threshold)
    if text_check is None:
        text_check = TextClassifier(config.text_classifier, deny_list=moderation.text_deny_list)

    pipeline = ModerationPipeline(lifecycle, ledger, audit, image_check, text_check)
    intake = AssetIntakeService(pipeline, lifecycle, stale_after_seconds=moderation.stale_upload_seconds)
    admin = AdminService(lifecycle, pipeline, ledger, audit)

    expiry_scheduler = PeriodicTaskScheduler(
        "EXPIRY SWEEP",
        ledger.expiry_sweep,
        lambda: config.expiry_sweep_interval,
    )
    reaper_scheduler = PeriodicTaskScheduler(
        "STALE UPLOADS",
        intake.reap_stale_uploads,
        lambda: config.stale_upload_interval,
        run_immediately=False,
    )

    return Runtime(
        config=config,
        db=db,
        audit=audit,
        auth=auth,
        notifications=notifications,
        ledger=ledger,
        lifecycle=lifecycle,
        pipeline=pipeline,
        intake=intake,
        admin=admin,
        expiry_scheduler=expiry_scheduler,
        reaper_scheduler=reaper_scheduler,
        image_check=image_check,
        text_check=text_check,
    )
