"""Background expiry sweep, expiry warnings and idle-session cleanup."""

from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from pymongo.asynchronous.database import AsyncDatabase

from coursegate.core.core import Service
from coursegate.core.modules.notification.models import ExpiryNotice, NoticeUrgency
from coursegate.core.modules.scheduler.models import SweepSummary

logger = structlog.get_logger(__name__)

WARNING_WINDOWS = ((7, NoticeUrgency.MEDIUM), (1, NoticeUrgency.HIGH))


class ExpiryScheduler(Service):
    """Timer-driven jobs that run outside the request path.

    The three jobs share nothing but the identity store. Each run catches its
    own errors, so a failed run never unschedules its job.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self.scheduler = AsyncIOScheduler(
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 300},
            timezone="UTC",
        )

    async def on_start(self) -> None:
        config = self.core.config
        if not config.scheduler_enabled:
            logger.info("expiry_scheduler_disabled")
            return

        self._add_job("expiry_sweep", self.run_expiry_sweep, CronTrigger(hour=config.expiry_sweep_hour, timezone="UTC"))
        self._add_job(
            "expiry_warnings", self.run_expiry_warnings, CronTrigger(hour=config.expiry_warning_hour, timezone="UTC")
        )
        self._add_job(
            "session_cleanup", self.run_session_cleanup, IntervalTrigger(minutes=config.session_cleanup_interval_minutes)
        )
        self.scheduler.start()
        logger.info("expiry_scheduler_started", sweep_hour=config.expiry_sweep_hour, warning_hour=config.expiry_warning_hour)

    async def on_stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def _add_job(self, name: str, job: Callable[[], Awaitable[object]], trigger: CronTrigger | IntervalTrigger) -> None:
        self.scheduler.add_job(self._run, trigger=trigger, args=[name, job], id=name, name=name, replace_existing=True)

    async def _run(self, name: str, job: Callable[[], Awaitable[object]]) -> None:
        with structlog.contextvars.bound_contextvars(job=name, run_id=uuid4().hex[:12]):
            await job()

    async def run_expiry_sweep(self) -> SweepSummary:
        """Flag lapsed entitlements on every identity; per-identity failures are logged and skipped."""
        summary = SweepSummary()
        entitlements = self.core.services.entitlement
        try:
            async for identity_id in entitlements.iter_identity_ids():
                summary.identities_scanned += 1
                try:
                    changed = await entitlements.sweep_identity(identity_id)
                except Exception:
                    summary.failures += 1
                    logger.exception("expiry_sweep_identity_failed", identity_id=identity_id)
                    continue
                if changed:
                    summary.identities_updated += 1
                    summary.entitlements_expired += changed
        except Exception:
            logger.exception("expiry_sweep_failed")

        logger.info("expiry_sweep_completed", **summary.model_dump())
        return summary

    async def run_expiry_warnings(self) -> list[ExpiryNotice]:
        """Emit one notice per entitlement expiring within 7 days and, separately, within 1 day."""
        notices: list[ExpiryNotice] = []
        try:
            for days, urgency in WARNING_WINDOWS:
                expiring = await self.core.services.entitlement.find_expiring(days)
                notices.extend(
                    ExpiryNotice(
                        identity_id=item.identity_id,
                        identity_contact=item.email,
                        name=item.name,
                        course_id=item.course_id,
                        expires_at=item.expires_at,
                        days_remaining=item.days_remaining,
                        urgency=urgency,
                    )
                    for item in expiring
                )
            if notices:
                await self.core.services.notification.deliver_expiry_notices(notices)
        except Exception:
            logger.exception("expiry_warnings_failed")

        logger.info("expiry_warnings_completed", notices=len(notices))
        return notices

    async def run_session_cleanup(self) -> int:
        try:
            return await self.core.services.session.cleanup_inactive_sessions()
        except Exception:
            logger.exception("session_cleanup_failed")
            return 0
