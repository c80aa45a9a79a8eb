"""
Deposit, withdrawal and check-in repositories.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.account import Account
from yieldledger.models.daily_checkin import DailyCheckin
from yieldledger.models.deposit import Deposit
from yieldledger.models.withdrawal import Withdrawal
from yieldledger.repositories.base import BaseRepository, ModelType


class _BankRequestRepository(BaseRepository[ModelType]):
    """Queries shared by deposit and withdrawal requests."""

    async def count_by_status(self) -> dict[str, int]:
        """Request counts keyed by status."""
        stmt = select(self.model.status, func.count()).group_by(self.model.status)
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def list_with_mobile(
        self,
        status: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[tuple[ModelType, str]]:
        """
        Requests with the owner's mobile, newest first.

        Args:
            status: Only requests in this status; all when None
            limit: Page size
            offset: Rows to skip

        Returns:
            List of (request, mobile) pairs
        """
        stmt = (
            select(self.model, Account.mobile)
            .join(Account, Account.id == self.model.account_id)
            .order_by(self.model.id.desc())
            .limit(limit)
            .offset(offset)
        )
        if status is not None:
            stmt = stmt.where(self.model.status == status)
        result = await self.session.execute(stmt)
        return [(row, mobile) for row, mobile in result.all()]


class DepositRepository(_BankRequestRepository[Deposit]):
    """Deposit repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize deposit repository."""
        super().__init__(Deposit, session)


class WithdrawalRepository(_BankRequestRepository[Withdrawal]):
    """Withdrawal repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize withdrawal repository."""
        super().__init__(Withdrawal, session)


class DailyCheckinRepository(BaseRepository[DailyCheckin]):
    """DailyCheckin repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize check-in repository."""
        super().__init__(DailyCheckin, session)

    async def find_in_window(
        self, account_id: int, start: datetime, end: datetime
    ) -> DailyCheckin | None:
        """Check-in of an account within [start, end), if any."""
        stmt = (
            select(DailyCheckin)
            .where(
                DailyCheckin.account_id == account_id,
                DailyCheckin.checkin_date >= start,
                DailyCheckin.checkin_date < end,
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def last_for_account(self, account_id: int) -> DailyCheckin | None:
        """Most recent check-in of an account."""
        stmt = (
            select(DailyCheckin)
            .where(DailyCheckin.account_id == account_id)
            .order_by(DailyCheckin.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
