"""
Purchase workflow.

Debits the buyer and opens a purchase in one atomic unit, then distributes
referral bonuses as a separate best-effort step. A failed distribution never
rolls the purchase back.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from functools import partial

from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.config.business_constants import PAYOUT_INTERVAL
from yieldledger.models.enums import PurchaseStatus, SystemAction, TransactionType
from yieldledger.models.purchase import Purchase
from yieldledger.services.balance_mutator import BalanceMutator
from yieldledger.services.base_service import BaseService
from yieldledger.services.referral.bonus_distributor import (
    BonusDistribution,
    BonusError,
    ReferralBonusDistributor,
)
from yieldledger.utils.exceptions import AtomicUnitError
from yieldledger.utils.money import format_kz, to_money
from yieldledger.utils.security import Principal, require_account
from yieldledger.validators.requests import PurchaseRequest


@dataclass
class PurchaseResult:
    """Outcome of a purchase."""

    purchase_id: int
    new_balance: Decimal
    next_payout: datetime
    expiry_date: datetime
    bonuses_distributed: BonusDistribution


class PurchaseWorkflow(BaseService):
    """Purchase workflow."""

    async def purchase(
        self,
        principal: Principal,
        account_id: int,
        request: PurchaseRequest,
    ) -> PurchaseResult:
        """
        Buy a product.

        Args:
            principal: Account owner or admin
            account_id: Buyer
            request: Validated purchase request

        Returns:
            PurchaseResult with the new balance and bonus distribution

        Raises:
            NotFoundError: Unknown account
            InsufficientFundsError: Balance lower than amount (no mutation)
            AtomicUnitError: Purchase unit failed and was rolled back
        """
        require_account(principal, account_id)
        now = self.now()

        try:
            purchase_id, new_balance, next_payout, expiry = (
                await self.store.run_in_transaction(
                    partial(
                        self._open_purchase,
                        account_id=account_id,
                        request=request,
                        now=now,
                    ),
                    label=f"purchase:{account_id}",
                )
            )
        except AtomicUnitError as e:
            await self.store.record_failure(
                SystemAction.PURCHASE_FAILED,
                f"Purchase of {request.product_name} by account {account_id} failed: {e}",
                account_id,
            )
            raise

        bonuses = await self._distribute_bonuses(
            account_id, request.amount, purchase_id
        )

        await self.store.audit(
            SystemAction.PURCHASE_COMPLETED,
            (
                f"Account {account_id} bought {request.product_name} for "
                f"{format_kz(request.amount)}. Referral bonuses distributed: "
                f"{format_kz(bonuses.total)}"
            ),
            account_id,
        )

        self.logger.info(
            "Purchase completed",
            extra={
                "account_id": account_id,
                "purchase_id": purchase_id,
                "amount": str(request.amount),
                "balance_after": str(new_balance),
                "bonus_total": str(bonuses.total),
            },
        )

        return PurchaseResult(
            purchase_id=purchase_id,
            new_balance=new_balance,
            next_payout=next_payout,
            expiry_date=expiry,
            bonuses_distributed=bonuses,
        )

    async def _open_purchase(
        self,
        session: AsyncSession,
        account_id: int,
        request: PurchaseRequest,
        now: datetime,
    ) -> tuple[int, Decimal, datetime, datetime]:
        amount = to_money(request.amount)
        mutator = BalanceMutator(session, self.store.clock)

        account = await mutator.lock_account(account_id)
        mutator.ensure_sufficient_funds(account, amount)

        change = await mutator.adjust_balance(
            account_id,
            -amount,
            TransactionType.PURCHASE,
            f"Purchase: {request.product_name}",
            log_action=SystemAction.PURCHASE_DEBIT,
            log_description=(
                f"Account {account_id} debited {format_kz(amount)} "
                f"for {request.product_name}"
            ),
        )

        purchase = Purchase(
            account_id=account_id,
            product_id=request.product_id,
            product_name=request.product_name,
            quantity=request.quantity,
            amount=amount,
            daily_return=to_money(request.daily_return),
            cycle_days=request.cycle_days,
            purchase_date=now,
            next_payout=now + PAYOUT_INTERVAL,
            expiry_date=now + timedelta(days=request.cycle_days),
            status=PurchaseStatus.ACTIVE.value,
            total_earned=Decimal("0"),
            payout_count=0,
        )
        session.add(purchase)
        await session.flush()

        return purchase.id, change.new_balance, purchase.next_payout, purchase.expiry_date

    async def _distribute_bonuses(
        self,
        account_id: int,
        amount: Decimal,
        purchase_id: int,
    ) -> BonusDistribution:
        distributor = ReferralBonusDistributor(self.store)
        try:
            return await distributor.distribute(account_id, amount, purchase_id)
        except Exception as e:
            self.logger.error(
                f"Referral distribution failed for purchase {purchase_id}: {e}",
                extra={"account_id": account_id, "purchase_id": purchase_id},
            )
            distribution = BonusDistribution()
            distribution.errors.append(
                BonusError(level=0, referrer_id=0, error=str(e))
            )
            return distribution
