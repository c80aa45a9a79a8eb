"""
Payout scheduler.

Triggers the payout engine once a day at a fixed wall-clock time in the
payout timezone, either in-process or through the dramatiq queue.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from yieldledger.config.settings import Settings
from yieldledger.services.payout.engine import PayoutBatchResult, PayoutEngine
from yieldledger.utils.security import SystemPrincipal


DAILY_PAYOUTS_JOB_ID = "daily_payouts"


class PayoutScheduler:
    """
    Daily payout trigger.

    Invoking it more than once in a window is safe: the engine only credits
    purchases whose ``next_payout`` has been reached.
    """

    def __init__(
        self,
        settings: Settings,
        engine: PayoutEngine,
        enqueue: Callable[[], Any] | None = None,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            settings: Application settings (time, timezone, dispatch mode)
            engine: Payout engine used for inline runs
            enqueue: Sends the payout message; required for queue dispatch
        """
        if settings.payout_dispatch == "queue" and enqueue is None:
            raise ValueError("Queue dispatch requires an enqueue callable")

        self.settings = settings
        self.engine = engine
        self.enqueue = enqueue
        self.principal = SystemPrincipal()
        self.scheduler = AsyncIOScheduler(timezone=settings.tz)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        """Register the daily job and start the scheduler."""
        self.scheduler.add_job(
            self._tick,
            CronTrigger(
                hour=self.settings.payout_cron_hour,
                minute=self.settings.payout_cron_minute,
                timezone=self.settings.tz,
            ),
            id=DAILY_PAYOUTS_JOB_ID,
            name="Daily automatic payouts",
            coalesce=True,
            max_instances=1,
            misfire_grace_time=self.settings.payout_misfire_grace_seconds,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(
            f"Payout scheduler started: daily at "
            f"{self.settings.payout_cron_hour:02d}:"
            f"{self.settings.payout_cron_minute:02d} "
            f"({self.settings.payout_timezone}), "
            f"dispatch={self.settings.payout_dispatch}"
        )

    def shutdown(self) -> None:
        """Stop the scheduler, waiting for a running job."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            logger.info("Payout scheduler stopped")

    def next_run_time(self) -> datetime | None:
        """Next fire time of the daily job, if scheduled."""
        job = self.scheduler.get_job(DAILY_PAYOUTS_JOB_ID)
        return job.next_run_time if job else None

    async def run_now(self) -> PayoutBatchResult:
        """
        Run the engine once, synchronously (manual trigger / tests).

        Raises:
            PayoutEngineError: The batch could not run
        """
        return await self.engine.process_due_payouts(self.principal)

    async def _tick(self) -> None:
        """Scheduled job body. Never raises into APScheduler."""
        try:
            if self.settings.payout_dispatch == "queue":
                self.enqueue()
                logger.info("Daily payouts enqueued")
                return

            batch = await self.run_now()
            logger.info(
                f"Scheduled payouts: {batch.processed} processed, "
                f"{batch.total_amount} KZ, {len(batch.errors)} errors"
            )
        except Exception as e:
            logger.exception(f"Scheduled payouts failed: {e}")
