"""
Purchase repository.

Data access layer for Purchase model, including the payout scan queries.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.enums import PurchaseStatus
from yieldledger.models.purchase import Purchase
from yieldledger.repositories.base import BaseRepository
from yieldledger.utils.money import to_money


class PurchaseRepository(BaseRepository[Purchase]):
    """Purchase repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize purchase repository."""
        super().__init__(Purchase, session)

    def _due_stmt(self, now: datetime):
        return (
            select(Purchase)
            .where(
                Purchase.status == PurchaseStatus.ACTIVE.value,
                Purchase.next_payout <= now,
                Purchase.expiry_date > now,
            )
            .order_by(Purchase.next_payout, Purchase.id)
        )

    async def find_due(
        self, now: datetime, limit: int | None = None
    ) -> list[Purchase]:
        """
        Find purchases eligible for a payout at ``now``.

        Eligibility: active, ``next_payout <= now`` and ``expiry_date > now``.

        Args:
            now: Reference time
            limit: Optional cap on rows returned

        Returns:
            Due purchases ordered by next_payout
        """
        stmt = self._due_stmt(now)
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_due_for_account(
        self, account_id: int, now: datetime
    ) -> list[Purchase]:
        """Due purchases of a single account."""
        stmt = self._due_stmt(now).where(Purchase.account_id == account_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_due(self, now: datetime) -> int:
        """Number of purchases eligible for a payout at ``now``."""
        stmt = select(func.count()).select_from(self._due_stmt(now).subquery())
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def find_expired_active(self, now: datetime) -> list[Purchase]:
        """Active purchases whose hard cutoff has passed."""
        stmt = select(Purchase).where(
            Purchase.status == PurchaseStatus.ACTIVE.value,
            Purchase.expiry_date <= now,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_account(self, account_id: int) -> list[Purchase]:
        """All purchases of an account, newest first."""
        stmt = (
            select(Purchase)
            .where(Purchase.account_id == account_id)
            .order_by(Purchase.purchase_date.desc(), Purchase.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_status(self) -> dict[str, int]:
        """Purchase counts keyed by status."""
        stmt = select(Purchase.status, func.count()).group_by(Purchase.status)
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def total_invested(self) -> Decimal:
        """Sum of all purchase principals (gifts included)."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Purchase.amount), 0))
        )
        return to_money(result.scalar_one())
