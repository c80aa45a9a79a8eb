"""
BankAccount repository.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.bank_account import BankAccount
from yieldledger.repositories.base import BaseRepository


class BankAccountRepository(BaseRepository[BankAccount]):
    """Saved bank account access."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize bank account repository."""
        super().__init__(BankAccount, session)

    async def get_for_account(
        self, account_id: int, *, for_update: bool = False
    ) -> BankAccount | None:
        """Saved bank account of ``account_id``, if any."""
        stmt = select(BankAccount).where(BankAccount.account_id == account_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
