"""
Transaction repository.

Read side of the ledger. Inserts go through the balance mutator only.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.transaction import Transaction
from yieldledger.repositories.base import BaseRepository
from yieldledger.utils.money import to_money


class TransactionRepository(BaseRepository[Transaction]):
    """Transaction repository with ledger queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize transaction repository."""
        super().__init__(Transaction, session)

    async def list_for_account(
        self, account_id: int, limit: int = 50, offset: int = 0
    ) -> list[Transaction]:
        """Ledger entries of an account, newest first."""
        return await self.find_all(
            limit=limit, offset=offset, account_id=account_id
        )

    async def sum_for_account(self, account_id: int) -> Decimal:
        """Sum of signed amounts for an account."""
        stmt = select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.account_id == account_id
        )
        result = await self.session.execute(stmt)
        return to_money(result.scalar_one())

    async def last_for_account(self, account_id: int) -> Transaction | None:
        """Most recent ledger entry of an account."""
        stmt = (
            select(Transaction)
            .where(Transaction.account_id == account_id)
            .order_by(Transaction.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_for_account(self, account_id: int) -> int:
        """Number of ledger entries of an account."""
        return await self.count(account_id=account_id)

    async def stats_by_type(
        self, tx_type: str, since: datetime | None = None
    ) -> tuple[int, Decimal]:
        """
        Count and amount total for one transaction type.

        Args:
            tx_type: Transaction type tag
            since: Optional lower bound on created_at

        Returns:
            Tuple of (count, total amount)
        """
        stmt = select(
            func.count(Transaction.id),
            func.coalesce(func.sum(Transaction.amount), 0),
        ).where(Transaction.type == tx_type)
        if since is not None:
            stmt = stmt.where(Transaction.created_at >= since)
        result = await self.session.execute(stmt)
        count, total = result.one()
        return count or 0, to_money(total)

    async def totals_by_type(self) -> dict[str, Decimal]:
        """Amount totals keyed by transaction type."""
        stmt = select(
            Transaction.type, func.coalesce(func.sum(Transaction.amount), 0)
        ).group_by(Transaction.type)
        result = await self.session.execute(stmt)
        return {tx_type: to_money(total) for tx_type, total in result.all()}
