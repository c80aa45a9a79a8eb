"""
Portfolio service.

Per-purchase progress views and package totals for an account.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.enums import PurchaseStatus
from yieldledger.models.purchase import Purchase
from yieldledger.repositories.purchase_repository import PurchaseRepository
from yieldledger.services.base_service import BaseService
from yieldledger.utils.datetime_utils import ensure_utc, whole_days_between
from yieldledger.utils.money import to_money
from yieldledger.utils.security import Principal, require_account


EXPIRED_DISPLAY_STATUS = "expired"


@dataclass
class PurchaseView:
    """Purchase with derived progress fields."""

    purchase_id: int
    product_id: str
    product_name: str
    amount: Decimal
    daily_return: Decimal
    cycle_days: int
    status: str
    display_status: str
    purchase_date: datetime
    next_payout: datetime | None
    expiry_date: datetime
    payout_count: int
    total_earned: Decimal
    total_return: Decimal
    days_remaining: int
    progress_percentage: Decimal


@dataclass
class PackageStats:
    """Totals across all purchases of an account."""

    total_packages: int
    active_packages: int
    completed_packages: int
    cancelled_packages: int
    daily_income: Decimal
    total_earned: Decimal
    total_invested: Decimal
    net_profit: Decimal
    next_payout: datetime | None


def build_view(purchase: Purchase, now: datetime) -> PurchaseView:
    """
    Derive display fields for a purchase.

    progress = payout_count / cycle_days, capped at 100%.
    """
    expiry = ensure_utc(purchase.expiry_date)
    active = purchase.status == PurchaseStatus.ACTIVE.value
    expired = active and expiry <= now

    progress = Decimal("0")
    if purchase.cycle_days > 0:
        progress = min(
            Decimal(purchase.payout_count) * 100 / purchase.cycle_days,
            Decimal("100"),
        ).quantize(Decimal("0.01"))

    return PurchaseView(
        purchase_id=purchase.id,
        product_id=purchase.product_id,
        product_name=purchase.product_name,
        amount=to_money(purchase.amount),
        daily_return=to_money(purchase.daily_return),
        cycle_days=purchase.cycle_days,
        status=purchase.status,
        display_status=EXPIRED_DISPLAY_STATUS if expired else purchase.status,
        purchase_date=ensure_utc(purchase.purchase_date),
        next_payout=ensure_utc(purchase.next_payout) if active and not expired else None,
        expiry_date=expiry,
        payout_count=purchase.payout_count,
        total_earned=to_money(purchase.total_earned),
        total_return=to_money(purchase.daily_return) * purchase.cycle_days,
        days_remaining=max(0, whole_days_between(now, expiry)) if active else 0,
        progress_percentage=progress,
    )


class PortfolioService(BaseService):
    """Read-only portfolio views."""

    async def _load(self, account_id: int) -> list[Purchase]:
        async def _query(session: AsyncSession) -> list[Purchase]:
            return await PurchaseRepository(session).find_by_account(account_id)

        return await self.store.run_in_transaction(
            _query, label=f"portfolio:{account_id}"
        )

    async def list_purchases(
        self, principal: Principal, account_id: int
    ) -> list[PurchaseView]:
        """Purchases of the account, newest first."""
        require_account(principal, account_id)
        now = self.now()
        return [build_view(p, now) for p in await self._load(account_id)]

    async def package_stats(
        self, principal: Principal, account_id: int
    ) -> PackageStats:
        """Aggregate package figures."""
        require_account(principal, account_id)
        now = self.now()
        views = [build_view(p, now) for p in await self._load(account_id)]

        earning = [v for v in views if v.display_status == PurchaseStatus.ACTIVE.value]
        total_earned = sum((v.total_earned for v in views), Decimal("0"))
        total_invested = sum((v.amount for v in views), Decimal("0"))
        upcoming = [v.next_payout for v in earning if v.next_payout is not None]

        return PackageStats(
            total_packages=len(views),
            active_packages=len(earning),
            completed_packages=sum(
                1 for v in views if v.status == PurchaseStatus.COMPLETED.value
            ),
            cancelled_packages=sum(
                1 for v in views if v.status == PurchaseStatus.CANCELLED.value
            ),
            daily_income=sum((v.daily_return for v in earning), Decimal("0")),
            total_earned=total_earned,
            total_invested=total_invested,
            net_profit=total_earned - total_invested,
            next_payout=min(upcoming) if upcoming else None,
        )
