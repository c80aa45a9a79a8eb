"""
Payout engine.

Credits ``daily_return`` to every purchase whose payout window has opened and
retires purchases whose cycle is over.

State machine per purchase:
    active --[window open, cycle incomplete]--> active
        (credited, next_payout += 24h, payout_count += 1)
    active --[payout_count >= cycle_days or elapsed days >= cycle_days]--> completed
    active --[expiry_date <= now]--> completed

``next_payout`` always advances by exactly 24h from its previous value. The
window itself (``next_payout <= now``) is the deduplication key: a purchase is
re-locked and re-checked inside its own unit, so overlapping or repeated
scans credit each window at most once.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from functools import partial

from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.config.business_constants import PAYOUT_INTERVAL
from yieldledger.models.enums import PurchaseStatus, SystemAction, TransactionType
from yieldledger.models.purchase import Purchase
from yieldledger.repositories.purchase_repository import PurchaseRepository
from yieldledger.repositories.system_log_repository import SystemLogRepository
from yieldledger.services.balance_mutator import BalanceMutator
from yieldledger.services.base_service import BaseService
from yieldledger.utils.datetime_utils import ensure_utc, same_local_day, whole_days_between
from yieldledger.utils.exceptions import (
    BusinessRuleError,
    DuplicateCollectionError,
    LedgerError,
    NotFoundError,
    PayoutEngineError,
)
from yieldledger.utils.money import format_kz, to_money
from yieldledger.utils.security import Principal, require_account, require_system


class CreditStatus(StrEnum):
    """Outcome of one purchase visit."""

    PAID = "paid"
    COMPLETED = "completed"
    EXPIRED = "expired"
    NOT_DUE = "not_due"
    INACTIVE = "inactive"


@dataclass
class PayoutResult:
    """Per-purchase outcome."""

    purchase_id: int
    account_id: int
    product_name: str
    status: CreditStatus
    amount: Decimal = Decimal("0")
    new_balance: Decimal | None = None
    payout_count: int = 0
    cycle_days: int = 0
    next_payout: datetime | None = None

    @property
    def credited(self) -> bool:
        return self.status == CreditStatus.PAID


@dataclass
class PayoutError:
    """Per-purchase failure collected by a batch."""

    purchase_id: int
    account_id: int
    error: str


@dataclass
class PayoutBatchResult:
    """Summary of one engine run or one collect-all call."""

    timestamp: datetime
    processed: int = 0
    completed: int = 0
    total_amount: Decimal = Decimal("0")
    results: list[PayoutResult] = field(default_factory=list)
    errors: list[PayoutError] = field(default_factory=list)

    def add(self, result: PayoutResult) -> None:
        """Record a per-purchase outcome."""
        self.results.append(result)
        if result.credited:
            self.processed += 1
            self.total_amount += result.amount
        if result.status in (CreditStatus.COMPLETED, CreditStatus.EXPIRED) or (
            result.credited and result.next_payout is None
        ):
            self.completed += 1


@dataclass(frozen=True)
class _PurchaseRef:
    purchase_id: int
    account_id: int


class PayoutEngine(BaseService):
    """
    Payout engine.

    ``process_due_payouts`` is the scheduler entry point;
    ``collect_purchase``/``collect_all`` are the user-initiated variants
    sharing the same window and increment.
    """

    async def process_due_payouts(
        self,
        principal: Principal,
        now: datetime | None = None,
    ) -> PayoutBatchResult:
        """
        Credit every due purchase and complete finished cycles.

        Args:
            principal: System or admin principal
            now: Reference time (defaults to the store clock)

        Returns:
            PayoutBatchResult with processed count, total and per-item lists

        Raises:
            AuthorizationError: Principal is not system/admin
            PayoutEngineError: Due purchases could not be loaded
        """
        require_system(principal)
        now = ensure_utc(now or self.now())
        batch = PayoutBatchResult(timestamp=now)

        self.logger.info(
            "Starting automatic payouts", extra={"timestamp": now.isoformat()}
        )

        try:
            due, expired = await self.store.run_in_transaction(
                partial(self._load_scan, now=now), label="payout_scan"
            )
        except LedgerError as e:
            self.logger.error(f"Automatic payouts failed: {e}")
            await self.store.record_failure(
                SystemAction.AUTO_PAYOUTS_ERROR,
                f"Automatic payouts failed: {e}",
            )
            raise PayoutEngineError(f"Automatic payouts failed: {e}") from e

        self.logger.info(
            f"Found {len(due)} due purchases, {len(expired)} expired",
            extra={"due": len(due), "expired": len(expired)},
        )

        for ref in due:
            await self._visit(
                batch,
                ref,
                now=now,
                transaction_type=TransactionType.DAILY_PAYOUT_AUTO,
                log_action=SystemAction.AUTO_DAILY_PAYOUT,
            )

        for ref in expired:
            await self._visit(
                batch,
                ref,
                now=now,
                transaction_type=TransactionType.DAILY_PAYOUT_AUTO,
                log_action=SystemAction.AUTO_DAILY_PAYOUT,
            )

        await self.store.audit(
            SystemAction.AUTO_PAYOUTS_COMPLETED,
            (
                f"Automatic payouts: {batch.processed} processed, "
                f"{format_kz(batch.total_amount)} paid, "
                f"{batch.completed} completed, {len(batch.errors)} errors"
            ),
        )

        self.logger.info(
            "Automatic payouts finished",
            extra={
                "processed": batch.processed,
                "total_amount": str(batch.total_amount),
                "completed": batch.completed,
                "errors": len(batch.errors),
            },
        )
        return batch

    async def collect_purchase(
        self,
        principal: Principal,
        account_id: int,
        purchase_id: int,
    ) -> PayoutResult:
        """
        User-initiated collection of one purchase.

        Args:
            principal: Account owner or admin
            account_id: Owner account
            purchase_id: Purchase to collect

        Returns:
            PayoutResult of the credit

        Raises:
            NotFoundError: Purchase missing, not owned or not active
            BusinessRuleError: Purchase expired (it is completed instead)
            DuplicateCollectionError: Already collected for this window/day
        """
        require_account(principal, account_id)
        now = self.now()

        result = await self.store.run_in_transaction(
            partial(
                self._credit_purchase,
                purchase_id=purchase_id,
                now=now,
                transaction_type=TransactionType.PRODUCT_INCOME,
                log_action=SystemAction.PRODUCT_INCOME_COLLECTED,
                owner_id=account_id,
                one_per_day=True,
            ),
            label=f"collect_income:{purchase_id}",
        )

        if result.status == CreditStatus.INACTIVE:
            raise NotFoundError("Active purchase", purchase_id)
        if result.status == CreditStatus.EXPIRED:
            raise BusinessRuleError("Product expired")
        if result.status == CreditStatus.COMPLETED:
            raise BusinessRuleError("Product cycle already completed")
        if result.status == CreditStatus.NOT_DUE:
            raise DuplicateCollectionError(
                "Income already collected for this product today"
            )
        return result

    async def collect_all(
        self, principal: Principal, account_id: int
    ) -> PayoutBatchResult:
        """
        Collect every due purchase of an account with per-purchase isolation.

        Returns:
            PayoutBatchResult; ``processed == 0`` when nothing was due
        """
        require_account(principal, account_id)
        now = self.now()
        batch = PayoutBatchResult(timestamp=now)

        async def _load(session: AsyncSession) -> list[_PurchaseRef]:
            purchases = await PurchaseRepository(session).find_due_for_account(
                account_id, now
            )
            return [_PurchaseRef(p.id, p.account_id) for p in purchases]

        refs = await self.store.run_in_transaction(
            _load, label=f"collect_scan:{account_id}"
        )

        for ref in refs:
            await self._visit(
                batch,
                ref,
                now=now,
                transaction_type=TransactionType.PRODUCT_INCOME,
                log_action=SystemAction.PRODUCT_INCOME_COLLECTED,
                owner_id=account_id,
                one_per_day=True,
            )

        if batch.processed:
            await self.store.audit(
                SystemAction.PRODUCT_INCOME_COLLECTED,
                (
                    f"Account {account_id} collected "
                    f"{format_kz(batch.total_amount)} from "
                    f"{batch.processed} product(s)"
                ),
                account_id,
            )
        return batch

    async def _load_scan(
        self, session: AsyncSession, *, now: datetime
    ) -> tuple[list[_PurchaseRef], list[_PurchaseRef]]:
        repo = PurchaseRepository(session)
        due = [
            _PurchaseRef(p.id, p.account_id) for p in await repo.find_due(now)
        ]
        expired = [
            _PurchaseRef(p.id, p.account_id)
            for p in await repo.find_expired_active(now)
        ]
        return due, expired

    async def _visit(
        self,
        batch: PayoutBatchResult,
        ref: _PurchaseRef,
        **kwargs,
    ) -> None:
        try:
            result = await self.store.run_in_transaction(
                partial(self._credit_purchase, purchase_id=ref.purchase_id, **kwargs),
                label=f"payout:{ref.purchase_id}",
            )
        except Exception as e:
            self.logger.error(
                f"Payout failed for purchase {ref.purchase_id}: {e}",
                extra={
                    "purchase_id": ref.purchase_id,
                    "account_id": ref.account_id,
                    "error": str(e),
                },
            )
            batch.errors.append(
                PayoutError(
                    purchase_id=ref.purchase_id,
                    account_id=ref.account_id,
                    error=str(e),
                )
            )
            return

        if result.status not in (CreditStatus.NOT_DUE, CreditStatus.INACTIVE):
            batch.add(result)

    async def _credit_purchase(
        self,
        session: AsyncSession,
        *,
        purchase_id: int,
        now: datetime,
        transaction_type: TransactionType,
        log_action: SystemAction,
        owner_id: int | None = None,
        one_per_day: bool = False,
    ) -> PayoutResult:
        """One atomic visit of a purchase: re-check under lock, then credit or complete."""
        purchase = await PurchaseRepository(session).lock_by_id(purchase_id)

        if purchase is None or (owner_id is not None and purchase.account_id != owner_id):
            if owner_id is not None:
                raise NotFoundError("Purchase", purchase_id)
            return PayoutResult(
                purchase_id=purchase_id,
                account_id=0,
                product_name="",
                status=CreditStatus.INACTIVE,
            )

        if not purchase.is_active:
            return self._result(purchase, CreditStatus.INACTIVE)

        if ensure_utc(purchase.expiry_date) <= now:
            await self._complete(session, purchase, now, "expired")
            return self._result(purchase, CreditStatus.EXPIRED)

        days_passed = whole_days_between(purchase.purchase_date, now)
        if purchase.payout_count >= purchase.cycle_days or days_passed >= purchase.cycle_days:
            await self._complete(session, purchase, now, "cycle finished")
            return self._result(purchase, CreditStatus.COMPLETED)

        next_payout = ensure_utc(purchase.next_payout)
        if next_payout > now:
            return self._result(purchase, CreditStatus.NOT_DUE)

        if (
            one_per_day
            and purchase.last_payout is not None
            and same_local_day(purchase.last_payout, now, self.settings.tz)
        ):
            return self._result(purchase, CreditStatus.NOT_DUE)

        amount = to_money(purchase.daily_return)
        next_count = purchase.payout_count + 1
        change = await BalanceMutator(session, self.store.clock).adjust_balance(
            purchase.account_id,
            amount,
            transaction_type,
            (
                f"Daily income {purchase.product_name} "
                f"(day {next_count}/{purchase.cycle_days})"
            ),
            log_action=log_action,
            log_description=(
                f"Purchase {purchase.id}: {format_kz(amount)} credited to "
                f"account {purchase.account_id}, payout {next_count}/"
                f"{purchase.cycle_days}"
            ),
        )

        purchase.next_payout = next_payout + PAYOUT_INTERVAL
        purchase.total_earned = to_money(purchase.total_earned) + amount
        purchase.payout_count = next_count
        purchase.last_payout = now

        status = CreditStatus.PAID
        if purchase.payout_count >= purchase.cycle_days:
            await self._complete(session, purchase, now, "final payout")
        await session.flush()

        self.logger.info(
            f"Purchase {purchase.id} credited {amount}",
            extra={
                "purchase_id": purchase.id,
                "account_id": purchase.account_id,
                "amount": str(amount),
                "balance_after": str(change.new_balance),
                "payout_count": purchase.payout_count,
            },
        )

        result = self._result(purchase, status)
        result.amount = amount
        result.new_balance = change.new_balance
        return result

    async def _complete(
        self,
        session: AsyncSession,
        purchase: Purchase,
        now: datetime,
        reason: str,
    ) -> None:
        purchase.status = PurchaseStatus.COMPLETED.value
        purchase.completed_at = now
        await SystemLogRepository(session).append(
            SystemAction.AUTO_PAYOUT_CYCLE_COMPLETED,
            (
                f"Purchase {purchase.id} ({purchase.product_name}) completed: "
                f"{reason}, {purchase.payout_count}/{purchase.cycle_days} payouts, "
                f"{format_kz(purchase.total_earned)} earned"
            ),
            purchase.account_id,
            created_at=now,
        )
        await session.flush()

    @staticmethod
    def _result(purchase: Purchase, status: CreditStatus) -> PayoutResult:
        active = purchase.is_active
        return PayoutResult(
            purchase_id=purchase.id,
            account_id=purchase.account_id,
            product_name=purchase.product_name,
            status=status,
            payout_count=purchase.payout_count,
            cycle_days=purchase.cycle_days,
            next_payout=ensure_utc(purchase.next_payout) if active else None,
        )
