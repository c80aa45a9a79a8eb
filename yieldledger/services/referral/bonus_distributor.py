"""
Referral bonus distributor.

Pays purchase commissions to the pre-materialized up-line. Each level is
credited in its own atomic unit; one level failing never blocks the others
or the purchase that triggered the distribution.
"""

from dataclasses import dataclass, field
from functools import partial
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.config.business_constants import REFERRAL_DEPTH, REFERRAL_RATES
from yieldledger.models.enums import SystemAction, TransactionType
from yieldledger.models.referral_bonus import ReferralBonus
from yieldledger.repositories.referral_repository import ReferralLevelRepository
from yieldledger.services.balance_mutator import BalanceMutator
from yieldledger.services.base_service import BaseService
from yieldledger.utils.money import floor_units, format_kz, to_money


@dataclass
class BonusDetail:
    """One paid commission."""

    level: int
    referrer_id: int
    percentage: Decimal
    amount: Decimal
    new_balance: Decimal


@dataclass
class BonusError:
    """One failed commission."""

    level: int
    referrer_id: int
    error: str


@dataclass
class BonusDistribution:
    """Outcome of a distribution run."""

    level1: Decimal = Decimal("0")
    level2: Decimal = Decimal("0")
    level3: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    details: list[BonusDetail] = field(default_factory=list)
    errors: list[BonusError] = field(default_factory=list)

    def add(self, detail: BonusDetail) -> None:
        """Record a paid level."""
        self.details.append(detail)
        self.total += detail.amount
        attr = f"level{detail.level}"
        setattr(self, attr, getattr(self, attr) + detail.amount)


def calculate_bonus(purchase_amount: Decimal, level: int) -> Decimal:
    """
    Commission for one level, truncated to whole KZ.

    Args:
        purchase_amount: Purchase principal
        level: Up-line level (1-3)

    Returns:
        Bonus amount; zero for levels without a rate
    """
    rate = REFERRAL_RATES.get(level)
    if rate is None or purchase_amount <= 0:
        return Decimal("0")
    return floor_units(to_money(purchase_amount) * rate)


class ReferralBonusDistributor(BaseService):
    """Distributes referral commissions for a purchase."""

    async def distribute(
        self,
        purchaser_id: int,
        purchase_amount: Decimal,
        purchase_id: int | None = None,
    ) -> BonusDistribution:
        """
        Credit up to three up-line levels for a purchase.

        Args:
            purchaser_id: Account that made the purchase
            purchase_amount: Purchase principal
            purchase_id: Purchase row the bonuses refer to

        Returns:
            BonusDistribution with per-level totals, details and errors

        Raises:
            AtomicUnitError: The up-line could not be read at all
        """
        distribution = BonusDistribution()

        async def _load_upline(session: AsyncSession):
            repo = ReferralLevelRepository(session)
            return [
                (edge.level, edge.referrer_id)
                for edge in await repo.get_upline(purchaser_id, REFERRAL_DEPTH)
            ]

        upline = await self.store.run_in_transaction(
            _load_upline, label=f"referral_upline:{purchaser_id}"
        )

        if not upline:
            self.logger.debug(
                "No up-line for purchaser",
                extra={"purchaser_id": purchaser_id},
            )
            return distribution

        for level, referrer_id in upline:
            bonus = calculate_bonus(purchase_amount, level)
            if bonus <= 0:
                continue

            try:
                detail = await self.store.run_in_transaction(
                    partial(
                        self._credit_level,
                        level=level,
                        referrer_id=referrer_id,
                        bonus=bonus,
                        purchaser_id=purchaser_id,
                        purchase_amount=purchase_amount,
                        purchase_id=purchase_id,
                    ),
                    label=f"referral_bonus:{purchaser_id}:L{level}",
                )
            except Exception as e:
                self.logger.error(
                    f"Referral bonus level {level} failed: {e}",
                    extra={
                        "purchaser_id": purchaser_id,
                        "referrer_id": referrer_id,
                        "level": level,
                        "amount": str(bonus),
                    },
                )
                distribution.errors.append(
                    BonusError(level=level, referrer_id=referrer_id, error=str(e))
                )
                continue

            distribution.add(detail)

        self.logger.info(
            "Referral bonuses distributed",
            extra={
                "purchaser_id": purchaser_id,
                "purchase_id": purchase_id,
                "total": str(distribution.total),
                "levels_paid": len(distribution.details),
                "levels_failed": len(distribution.errors),
            },
        )
        return distribution

    async def _credit_level(
        self,
        session: AsyncSession,
        *,
        level: int,
        referrer_id: int,
        bonus: Decimal,
        purchaser_id: int,
        purchase_amount: Decimal,
        purchase_id: int | None,
    ) -> BonusDetail:
        rate = REFERRAL_RATES[level]
        percentage = (rate * 100).quantize(Decimal("0.01"))
        description = (
            f"Level {level} referral bonus ({percentage}%) "
            f"on purchase of {format_kz(purchase_amount)}"
        )

        mutator = BalanceMutator(session, self.store.clock)
        change = await mutator.adjust_balance(
            referrer_id,
            bonus,
            TransactionType.REFERRAL_BONUS,
            description,
            log_action=SystemAction.REFERRAL_BONUS,
            log_description=(
                f"Account {referrer_id} received {format_kz(bonus)} "
                f"level {level} bonus from account {purchaser_id}"
            ),
        )

        session.add(
            ReferralBonus(
                referrer_id=referrer_id,
                referred_account_id=purchaser_id,
                purchase_id=purchase_id,
                level=level,
                purchase_amount=to_money(purchase_amount),
                bonus_amount=bonus,
                bonus_percentage=percentage,
                description=description,
                created_at=self.now(),
            )
        )
        await session.flush()

        return BonusDetail(
            level=level,
            referrer_id=referrer_id,
            percentage=percentage,
            amount=bonus,
            new_balance=change.new_balance,
        )
