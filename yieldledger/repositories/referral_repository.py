"""
Referral repositories.

Data access for the materialized up-line (ReferralLevel) and for commission
audit rows (ReferralBonus).
"""

from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.account import Account
from yieldledger.models.referral_bonus import ReferralBonus
from yieldledger.models.referral_level import ReferralLevel
from yieldledger.repositories.base import BaseRepository
from yieldledger.utils.money import to_money


class ReferralLevelRepository(BaseRepository[ReferralLevel]):
    """ReferralLevel repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral level repository."""
        super().__init__(ReferralLevel, session)

    async def get_upline(
        self, account_id: int, max_level: int
    ) -> list[ReferralLevel]:
        """
        Up-line edges of an account, level 1 first.

        Args:
            account_id: Referred account (the purchaser)
            max_level: Deepest level to return

        Returns:
            Zero to ``max_level`` edges
        """
        stmt = (
            select(ReferralLevel)
            .where(
                ReferralLevel.account_id == account_id,
                ReferralLevel.level <= max_level,
            )
            .order_by(ReferralLevel.level)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_level(self, referrer_id: int) -> dict[int, int]:
        """Number of referred accounts per level below ``referrer_id``."""
        stmt = (
            select(ReferralLevel.level, func.count())
            .where(ReferralLevel.referrer_id == referrer_id)
            .group_by(ReferralLevel.level)
        )
        result = await self.session.execute(stmt)
        return {level: count for level, count in result.all()}

    async def get_downline(
        self, referrer_id: int
    ) -> list[tuple[ReferralLevel, Account]]:
        """Edges below ``referrer_id`` with the referred account, by level."""
        stmt = (
            select(ReferralLevel, Account)
            .join(Account, Account.id == ReferralLevel.account_id)
            .where(ReferralLevel.referrer_id == referrer_id)
            .order_by(ReferralLevel.level, ReferralLevel.id)
        )
        result = await self.session.execute(stmt)
        return [(edge, account) for edge, account in result.all()]

    async def delete_for_account(self, account_id: int) -> int:
        """Remove every edge where the account is on either end."""
        return await self.delete_where(
            or_(
                ReferralLevel.account_id == account_id,
                ReferralLevel.referrer_id == account_id,
            )
        )


class ReferralBonusRepository(BaseRepository[ReferralBonus]):
    """ReferralBonus repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral bonus repository."""
        super().__init__(ReferralBonus, session)

    async def totals_by_level(self, referrer_id: int) -> dict[int, Decimal]:
        """Commission totals per level earned by ``referrer_id``."""
        stmt = (
            select(
                ReferralBonus.level,
                func.coalesce(func.sum(ReferralBonus.bonus_amount), 0),
            )
            .where(ReferralBonus.referrer_id == referrer_id)
            .group_by(ReferralBonus.level)
        )
        result = await self.session.execute(stmt)
        return {level: to_money(total) for level, total in result.all()}

    async def recent(
        self, referrer_id: int, limit: int = 20
    ) -> list[ReferralBonus]:
        """Latest commissions earned by ``referrer_id``."""
        return await self.find_all(limit=limit, referrer_id=referrer_id)

    async def delete_for_account(self, account_id: int) -> int:
        """Remove bonus rows where the account is referrer or purchaser."""
        return await self.delete_where(
            or_(
                ReferralBonus.referrer_id == account_id,
                ReferralBonus.referred_account_id == account_id,
            )
        )
