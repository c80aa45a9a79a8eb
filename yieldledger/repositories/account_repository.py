"""
Account repository.

Data access layer for Account model.
"""

from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.account import Account
from yieldledger.models.purchase import Purchase
from yieldledger.models.referral_level import ReferralLevel
from yieldledger.repositories.base import BaseRepository
from yieldledger.utils.money import to_money


class AccountRepository(BaseRepository[Account]):
    """Account repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize account repository."""
        super().__init__(Account, session)

    async def get_by_mobile(self, mobile: str) -> Account | None:
        """Get account by mobile number."""
        return await self.get_by(mobile=mobile)

    async def get_by_referral_code(
        self, referral_code: str
    ) -> Account | None:
        """
        Get account by referral code (case-insensitive).

        Codes are stored upper-case.
        """
        if not referral_code:
            return None
        return await self.get_by(referral_code=referral_code.strip().upper())

    async def referral_code_exists(self, referral_code: str) -> bool:
        """Check whether a referral code is taken."""
        return await self.count(referral_code=referral_code) > 0

    async def apply_balance_delta(
        self, account_id: int, delta: Decimal
    ) -> Decimal | None:
        """
        Apply a relative balance change and return the resulting balance.

        Executes ``UPDATE accounts SET balance = balance + :delta`` so
        concurrent deltas commute; the value is never read-modified-written.

        Args:
            account_id: Account ID
            delta: Signed amount

        Returns:
            Balance after the update, or None if the account does not exist
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(balance=Account.balance + delta)
            .returning(Account.balance)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        new_balance = result.scalar_one_or_none()
        if new_balance is None:
            return None
        return to_money(new_balance)

    async def list_with_counts(
        self, limit: int = 50, offset: int = 0
    ) -> list[tuple[Account, int, int]]:
        """
        Accounts newest first with their purchase and referral counts.

        The referral count is the number of up-line edges where the account
        is the referrer, so it covers every level.

        Returns:
            List of (account, purchase_count, referral_count)
        """
        purchase_count = (
            select(func.count(Purchase.id))
            .where(Purchase.account_id == Account.id)
            .correlate(Account)
            .scalar_subquery()
        )
        referral_count = (
            select(func.count(ReferralLevel.id))
            .where(ReferralLevel.referrer_id == Account.id)
            .correlate(Account)
            .scalar_subquery()
        )
        stmt = (
            select(Account, purchase_count, referral_count)
            .order_by(Account.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return [(account, p, r) for account, p, r in result.all()]

    async def detach_invitees(self, inviter_id: int) -> int:
        """
        Null ``inviter_id`` for every direct invitee.

        Returns:
            Number of detached accounts
        """
        stmt = (
            update(Account)
            .where(Account.inviter_id == inviter_id)
            .values(inviter_id=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def list_ids(self) -> list[int]:
        """All account IDs in ascending order."""
        result = await self.session.execute(
            select(Account.id).order_by(Account.id)
        )
        return list(result.scalars().all())

    async def total_balance(self) -> Decimal:
        """Sum of all account balances."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Account.balance), 0))
        )
        return to_money(result.scalar_one())
