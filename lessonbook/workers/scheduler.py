from __future__ import annotations

from dataclasses import dataclass
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.base import BaseScheduler

from ..domain import CALLABLE_STATUSES, BookingStatus
from ..services.booking_service import BookingLifecycleManager
from ..services.persistence import StateSynchronizer

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "expiry-sweep"
SYNC_JOB_ID = "state-sync"


@dataclass(slots=True)
class SweepReport:
    expired: int = 0
    reminded: int = 0
    failed: int = 0


class ExpirySweeper:
    """Expires lapsed payment deadlines and sends lesson-start reminders."""

    def __init__(self, lifecycle: BookingLifecycleManager) -> None:
        self.lifecycle = lifecycle

    def run_once(self) -> SweepReport:
        report = SweepReport()
        for booking in self.lifecycle.active_bookings():
            try:
                if booking.status == BookingStatus.awaiting_payment:
                    if self.lifecycle.expire(booking.id):
                        report.expired += 1
                elif booking.status in CALLABLE_STATUSES:
                    if self.lifecycle.remind_if_due(booking.id):
                        report.reminded += 1
            except Exception:
                report.failed += 1
                logger.exception("Sweep failed for booking", extra={"booking_id": booking.id})
        if report.expired or report.reminded or report.failed:
            logger.info(
                "Sweep finished",
                extra={
                    "expired": report.expired,
                    "reminded": report.reminded,
                    "failed": report.failed,
                },
            )
        return report


class SweepScheduler:
    def __init__(
        self,
        sweeper: ExpirySweeper,
        synchronizer: StateSynchronizer | None = None,
        *,
        sweep_interval_seconds: int = 60,
        sync_interval_seconds: int = 30,
        scheduler: BaseScheduler | None = None,
    ) -> None:
        self.sweeper = sweeper
        self.synchronizer = synchronizer
        self.scheduler = scheduler or AsyncIOScheduler()
        self.scheduler.add_job(
            sweeper.run_once,
            "interval",
            seconds=sweep_interval_seconds,
            id=SWEEP_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        if synchronizer is not None:
            self.scheduler.add_job(
                synchronizer.flush,
                "interval",
                seconds=sync_interval_seconds,
                id=SYNC_JOB_ID,
                max_instances=1,
                coalesce=True,
            )

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        if self.synchronizer is not None:
            self.synchronizer.flush()
