"""
Income service.

Daily check-in reward: one credit per account per calendar day in the payout
timezone.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.config.business_constants import CHECKIN_REWARD
from yieldledger.models.daily_checkin import DailyCheckin
from yieldledger.models.enums import SystemAction, TransactionType
from yieldledger.repositories.request_repository import DailyCheckinRepository
from yieldledger.services.balance_mutator import BalanceMutator
from yieldledger.services.base_service import BaseService
from yieldledger.utils.datetime_utils import ensure_utc, local_day_bounds
from yieldledger.utils.exceptions import DuplicateCollectionError
from yieldledger.utils.money import format_kz, to_money
from yieldledger.utils.security import Principal, require_account


@dataclass
class CheckinResult:
    account_id: int
    amount: Decimal
    new_balance: Decimal
    next_checkin: datetime


@dataclass
class CheckinStatus:
    """Whether the account can check in now, and when it next can."""

    can_checkin: bool
    next_checkin: datetime
    last_checkin: datetime | None = None
    amount_received: Decimal | None = None


@dataclass
class CheckinHistory:
    checkins: list[DailyCheckin]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit)


class IncomeService(BaseService):
    """Check-in rewards."""

    async def daily_checkin(
        self,
        principal: Principal,
        account_id: int,
        source: str = "account",
    ) -> CheckinResult:
        """
        Credit the daily check-in reward.

        Args:
            principal: Account owner or admin
            account_id: Account checking in
            source: Who triggered it, written to the audit entry

        Raises:
            DuplicateCollectionError: Already checked in today
            NotFoundError: Unknown account
        """
        require_account(principal, account_id)
        now = self.now()
        day_start, day_end = local_day_bounds(now, self.settings.tz)

        async def _checkin(session: AsyncSession) -> CheckinResult:
            mutator = BalanceMutator(session, self.store.clock)
            await mutator.lock_account(account_id)

            checkins = DailyCheckinRepository(session)
            if await checkins.find_in_window(account_id, day_start, day_end):
                raise DuplicateCollectionError("Check-in already done today")

            change = await mutator.adjust_balance(
                account_id,
                CHECKIN_REWARD,
                TransactionType.DAILY_CHECKIN,
                "Daily check-in reward",
                log_action=SystemAction.DAILY_CHECKIN,
                log_description=(
                    f"Account {account_id} checked in ({source}): "
                    f"+{format_kz(CHECKIN_REWARD)}"
                ),
            )
            session.add(
                DailyCheckin(
                    account_id=account_id,
                    checkin_date=now,
                    amount_received=CHECKIN_REWARD,
                    next_checkin=day_end,
                )
            )
            await session.flush()
            return CheckinResult(
                account_id=account_id,
                amount=CHECKIN_REWARD,
                new_balance=change.new_balance,
                next_checkin=day_end,
            )

        result = await self.store.run_in_transaction(
            _checkin, label=f"checkin:{account_id}"
        )
        self.logger.info(
            "Daily check-in",
            extra={
                "account_id": account_id,
                "amount": str(result.amount),
                "balance_after": str(result.new_balance),
            },
        )
        return result

    async def checkin_status(
        self, principal: Principal, account_id: int
    ) -> CheckinStatus:
        """
        Check-in availability for the current local day.

        ``amount_received`` is set only when today's check-in is done;
        ``last_checkin`` is the most recent check-in on any day.
        """
        require_account(principal, account_id)
        day_start, day_end = local_day_bounds(self.now(), self.settings.tz)

        async def _load(session: AsyncSession):
            checkins = DailyCheckinRepository(session)
            return (
                await checkins.find_in_window(account_id, day_start, day_end),
                await checkins.last_for_account(account_id),
            )

        today, last = await self.store.run_in_transaction(
            _load, label=f"checkin_status:{account_id}"
        )
        return CheckinStatus(
            can_checkin=today is None,
            next_checkin=day_end,
            last_checkin=ensure_utc(last.checkin_date) if last else None,
            amount_received=to_money(today.amount_received) if today else None,
        )

    async def checkin_history(
        self,
        principal: Principal,
        account_id: int,
        page: int = 1,
        limit: int = 30,
    ) -> CheckinHistory:
        """Check-ins of an account, newest first, one page at a time."""
        require_account(principal, account_id)
        page = max(page, 1)
        limit = max(1, min(limit, 100))

        async def _load(session: AsyncSession) -> CheckinHistory:
            checkins = DailyCheckinRepository(session)
            return CheckinHistory(
                checkins=await checkins.find_all(
                    limit=limit, offset=(page - 1) * limit, account_id=account_id
                ),
                page=page,
                limit=limit,
                total=await checkins.count(account_id=account_id),
            )

        return await self.store.run_in_transaction(
            _load, label=f"checkin_history:{account_id}"
        )
