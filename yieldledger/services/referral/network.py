"""
Referral network queries.

Team statistics and commission history for an account.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.config.business_constants import REFERRAL_DEPTH, REFERRAL_RATES
from yieldledger.models.referral_bonus import ReferralBonus
from yieldledger.repositories.referral_repository import (
    ReferralBonusRepository,
    ReferralLevelRepository,
)
from yieldledger.services.base_service import BaseService
from yieldledger.utils.money import to_money
from yieldledger.utils.security import Principal, require_account


@dataclass
class LevelStats:
    """Members and commissions on one level."""

    level: int
    rate_percentage: Decimal
    members: int
    commissions: Decimal


@dataclass
class TeamStatistics:
    """Referral team summary of an account."""

    account_id: int
    levels: list[LevelStats] = field(default_factory=list)

    @property
    def total_members(self) -> int:
        return sum(level.members for level in self.levels)

    @property
    def total_commissions(self) -> Decimal:
        return sum((level.commissions for level in self.levels), Decimal("0"))


class ReferralNetworkService(BaseService):
    """Read-only referral views."""

    async def team_statistics(
        self, principal: Principal, account_id: int
    ) -> TeamStatistics:
        """Member count and commission total per level."""
        require_account(principal, account_id)

        async def _load(session: AsyncSession) -> TeamStatistics:
            members = await ReferralLevelRepository(session).count_by_level(account_id)
            totals = await ReferralBonusRepository(session).totals_by_level(account_id)
            stats = TeamStatistics(account_id=account_id)
            for level in range(1, REFERRAL_DEPTH + 1):
                stats.levels.append(
                    LevelStats(
                        level=level,
                        rate_percentage=REFERRAL_RATES[level] * 100,
                        members=members.get(level, 0),
                        commissions=to_money(totals.get(level, 0)),
                    )
                )
            return stats

        return await self.store.run_in_transaction(
            _load, label=f"team_statistics:{account_id}"
        )

    async def commissions(
        self, principal: Principal, account_id: int, limit: int = 20
    ) -> list[ReferralBonus]:
        """Most recent commissions earned by the account."""
        require_account(principal, account_id)

        async def _load(session: AsyncSession) -> list[ReferralBonus]:
            return await ReferralBonusRepository(session).recent(account_id, limit)

        return await self.store.run_in_transaction(
            _load, label=f"commissions:{account_id}"
        )
