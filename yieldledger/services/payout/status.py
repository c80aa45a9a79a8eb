"""
Payout status service.

Read-only view of the payout pipeline for operators.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.enums import SystemAction, TransactionType
from yieldledger.repositories.purchase_repository import PurchaseRepository
from yieldledger.repositories.system_log_repository import SystemLogRepository
from yieldledger.repositories.transaction_repository import TransactionRepository
from yieldledger.services.base_service import BaseService
from yieldledger.utils.datetime_utils import ensure_utc, local_day_bounds


PAYOUT_LOG_ACTIONS = [
    SystemAction.AUTO_DAILY_PAYOUT,
    SystemAction.AUTO_PAYOUTS_COMPLETED,
    SystemAction.AUTO_PAYOUTS_ERROR,
    SystemAction.AUTO_PAYOUT_CYCLE_COMPLETED,
]


@dataclass
class PayoutLogEntry:
    action: str
    description: str
    created_at: datetime


@dataclass
class PayoutStatus:
    """Snapshot of payout activity."""

    timestamp: datetime
    due_now: int
    payouts_today: int
    payouts_total: int
    total_paid: Decimal
    timezone: str
    schedule: str
    next_run: datetime | None = None
    recent_logs: list[PayoutLogEntry] = field(default_factory=list)


class PayoutStatusService(BaseService):
    """Builds PayoutStatus snapshots."""

    async def status(
        self,
        now: datetime | None = None,
        next_run: datetime | None = None,
    ) -> PayoutStatus:
        """
        Current payout status.

        Args:
            now: Reference time (defaults to the store clock)
            next_run: Next scheduled run, when a scheduler is attached

        Returns:
            PayoutStatus snapshot
        """
        now = ensure_utc(now or self.now())
        day_start, _ = local_day_bounds(now, self.settings.tz)

        async def _load(session: AsyncSession) -> PayoutStatus:
            transactions = TransactionRepository(session)
            due_now = await PurchaseRepository(session).count_due(now)
            today_count, _ = await transactions.stats_by_type(
                TransactionType.DAILY_PAYOUT_AUTO, since=day_start
            )
            total_count, total_paid = await transactions.stats_by_type(
                TransactionType.DAILY_PAYOUT_AUTO
            )
            logs = await SystemLogRepository(session).recent_by_actions(
                PAYOUT_LOG_ACTIONS, limit=5
            )
            return PayoutStatus(
                timestamp=now,
                due_now=due_now,
                payouts_today=today_count,
                payouts_total=total_count,
                total_paid=total_paid,
                timezone=self.settings.payout_timezone,
                schedule=(
                    f"daily at {self.settings.payout_cron_hour:02d}:"
                    f"{self.settings.payout_cron_minute:02d}"
                ),
                next_run=next_run,
                recent_logs=[
                    PayoutLogEntry(
                        action=log.action,
                        description=log.description,
                        created_at=ensure_utc(log.created_at),
                    )
                    for log in logs
                ],
            )

        return await self.store.run_in_transaction(_load, label="payout_status")
