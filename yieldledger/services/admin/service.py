"""
Admin service.

Administrator balance adjustments, deposit/withdrawal decisions and queues,
purchase cancellation, gifts, account listing and deletion, bulk adjustments,
statistics and ledger reconciliation. Every balance change goes through
BalanceMutator inside one atomic unit together with its domain status update.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from functools import partial
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.config.business_constants import (
    ADMIN_GIFT_PRODUCT_PREFIX,
    PAYOUT_INTERVAL,
)
from yieldledger.models.account import Account
from yieldledger.models.bank_account import BankAccount
from yieldledger.models.daily_checkin import DailyCheckin
from yieldledger.models.deposit import Deposit
from yieldledger.models.enums import (
    PurchaseStatus,
    RequestStatus,
    SystemAction,
    TransactionType,
)
from yieldledger.models.purchase import Purchase
from yieldledger.models.transaction import Transaction
from yieldledger.models.withdrawal import Withdrawal
from yieldledger.repositories.account_repository import AccountRepository
from yieldledger.repositories.bank_account_repository import BankAccountRepository
from yieldledger.repositories.purchase_repository import PurchaseRepository
from yieldledger.repositories.referral_repository import (
    ReferralBonusRepository,
    ReferralLevelRepository,
)
from yieldledger.repositories.request_repository import (
    DailyCheckinRepository,
    DepositRepository,
    WithdrawalRepository,
)
from yieldledger.repositories.system_log_repository import SystemLogRepository
from yieldledger.repositories.transaction_repository import TransactionRepository
from yieldledger.services.account_service import AccountProfile
from yieldledger.services.admin.actions import (
    AddBalanceAction,
    AdminAction,
    DeductBalanceAction,
    SetBalanceAction,
    SimulateCheckinAction,
    SimulateCollectIncomeAction,
)
from yieldledger.services.balance_mutator import BalanceMutator
from yieldledger.services.base_service import BaseService, log_operation
from yieldledger.services.income_service import IncomeService
from yieldledger.services.payout.engine import PayoutEngine
from yieldledger.utils.datetime_utils import ensure_utc
from yieldledger.utils.exceptions import (
    AlreadyProcessedError,
    AtomicUnitError,
    NotFoundError,
    ValidationError,
)
from yieldledger.utils.money import format_kz, to_money
from yieldledger.utils.security import Principal, require_admin
from yieldledger.validators.requests import (
    AmountRequest,
    BulkBalanceRequest,
    BulkOperation,
    GrantProductRequest,
    RejectionRequest,
    SetBalanceRequest,
)


@dataclass
class AdjustmentResult:
    """Outcome of one admin balance adjustment."""

    account_id: int
    action: str
    previous_balance: Decimal
    new_balance: Decimal
    delta: Decimal
    transaction_id: int


@dataclass
class RequestDecision:
    """Outcome of a deposit or withdrawal decision."""

    request_id: int
    account_id: int
    status: str
    amount: Decimal
    new_balance: Decimal | None = None


@dataclass
class CancellationResult:
    purchase_id: int
    account_id: int
    refunded: Decimal
    new_balance: Decimal | None


@dataclass
class BulkItemError:
    index: int
    account_id: int
    action: str
    error: str


@dataclass
class BulkResult:
    """Results/errors split and totals of a bulk adjustment."""

    results: list[AdjustmentResult] = field(default_factory=list)
    errors: list[BulkItemError] = field(default_factory=list)
    total_added: Decimal = Decimal("0")
    total_deducted: Decimal = Decimal("0")
    total_set: int = 0

    @property
    def succeeded(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return len(self.errors)


@dataclass
class ReconciliationReport:
    """Ledger check of one account."""

    account_id: int
    balance: Decimal
    initial_balance: Decimal
    transaction_sum: Decimal
    transaction_count: int
    last_balance_after: Decimal | None

    @property
    def expected_balance(self) -> Decimal:
        return self.initial_balance + self.transaction_sum

    @property
    def is_consistent(self) -> bool:
        """Sum of entries and last snapshot both match the stored balance."""
        if self.expected_balance != self.balance:
            return False
        if self.last_balance_after is not None:
            return self.last_balance_after == self.balance
        return True


@dataclass
class PlatformStatistics:
    accounts: int
    total_balance: Decimal
    purchases_by_status: dict[str, int]
    total_invested: Decimal
    deposits_by_status: dict[str, int]
    withdrawals_by_status: dict[str, int]
    transaction_totals: dict[str, Decimal]


@dataclass
class RequestSummary:
    """One deposit or withdrawal in the admin queue."""

    request_id: int
    account_id: int
    mobile: str
    amount: Decimal
    status: str
    account_name: str
    iban: str
    bank_name: str
    created_at: datetime
    processed_at: datetime | None = None
    rejection_reason: str | None = None
    tax: Decimal | None = None
    net_amount: Decimal | None = None


@dataclass
class AccountSummary:
    account_id: int
    mobile: str
    balance: Decimal
    referral_code: str
    created_at: datetime
    purchase_count: int
    referral_count: int


@dataclass
class AccountListing:
    accounts: list[AccountSummary]
    total: int
    total_balance: Decimal


@dataclass
class ReferralMember:
    level: int
    account_id: int
    mobile: str
    balance: Decimal
    joined_at: datetime


@dataclass
class AccountFullData:
    """Everything stored about one account, for support."""

    profile: AccountProfile
    purchases: list[Purchase]
    transactions: list[Transaction]
    deposits: list[RequestSummary]
    withdrawals: list[RequestSummary]
    referral_network: list[ReferralMember]
    checkins: list[DailyCheckin]
    bank_account: BankAccount | None


_ADJUSTMENT_LOG = {
    "add": SystemAction.ADMIN_BALANCE_ADD,
    "deduct": SystemAction.ADMIN_BALANCE_DEDUCT,
    "set": SystemAction.ADMIN_SET_BALANCE,
}


class AdminService(BaseService):
    """Administrator operations. Every public method requires an admin principal."""

    # ------------------------------------------------------------------
    # Balance adjustments
    # ------------------------------------------------------------------

    async def _adjust(
        self,
        session: AsyncSession,
        *,
        account_id: int,
        action: str,
        amount: Decimal,
        reason: str | None,
    ) -> AdjustmentResult:
        """add / deduct / set under a row lock, applied as a relative delta."""
        mutator = BalanceMutator(session, self.store.clock)
        account = await mutator.lock_account(account_id)
        previous = to_money(account.balance)
        amount = to_money(amount)

        if action == "add":
            delta = amount
            tx_type = TransactionType.ADMIN_ADDITION
            text = f"Admin credit: {reason or 'balance addition'}"
        elif action == "deduct":
            mutator.ensure_sufficient_funds(account, amount)
            delta = -amount
            tx_type = TransactionType.ADMIN_DEDUCTION
            text = f"Admin debit: {reason or 'balance deduction'}"
        else:
            delta = amount - previous
            tx_type = (
                TransactionType.ADMIN_ADDITION
                if delta >= 0
                else TransactionType.ADMIN_DEDUCTION
            )
            text = (
                f"Admin set balance from {format_kz(previous)} to "
                f"{format_kz(amount)}: {reason or 'manual correction'}"
            )

        change = await mutator.adjust_balance(
            account_id,
            delta,
            tx_type,
            text,
            log_action=_ADJUSTMENT_LOG[action],
            log_description=(
                f"Admin {action} on account {account.mobile}: "
                f"{format_kz(previous)} -> balance change {delta:+}"
            ),
        )
        return AdjustmentResult(
            account_id=account_id,
            action=action,
            previous_balance=previous,
            new_balance=change.new_balance,
            delta=delta,
            transaction_id=change.transaction_id,
        )

    async def _run_recorded(
        self,
        work,
        *,
        label: str,
        account_id: int | None,
        description: str,
    ):
        """Run one admin unit, writing ATOMIC_UNIT_FAILED if it rolls back."""
        try:
            return await self.store.run_in_transaction(work, label=label)
        except AtomicUnitError as e:
            await self.store.record_failure(
                SystemAction.ATOMIC_UNIT_FAILED,
                f"{description} failed: {e}",
                account_id,
            )
            raise

    async def _run_adjustment(
        self, account_id: int, action: str, amount: Decimal, reason: str | None
    ) -> AdjustmentResult:
        result = await self._run_recorded(
            partial(
                self._adjust,
                account_id=account_id,
                action=action,
                amount=amount,
                reason=reason,
            ),
            label=f"admin_{action}:{account_id}",
            account_id=account_id,
            description=f"Admin {action} of {format_kz(amount)} on account {account_id}",
        )
        self.logger.info(
            f"Admin {action} balance",
            extra={
                "account_id": account_id,
                "amount": str(result.delta),
                "balance_after": str(result.new_balance),
            },
        )
        return result

    async def add_balance(
        self, principal: Principal, account_id: int, request: AmountRequest
    ) -> AdjustmentResult:
        """Credit ``request.amount`` to an account."""
        require_admin(principal)
        return await self._run_adjustment(
            account_id, "add", request.amount, request.reason
        )

    async def deduct_balance(
        self, principal: Principal, account_id: int, request: AmountRequest
    ) -> AdjustmentResult:
        """
        Debit ``request.amount`` from an account.

        Raises:
            InsufficientFundsError: Balance lower than amount (no mutation)
        """
        require_admin(principal)
        return await self._run_adjustment(
            account_id, "deduct", request.amount, request.reason
        )

    async def set_balance(
        self, principal: Principal, account_id: int, request: SetBalanceRequest
    ) -> AdjustmentResult:
        """
        Move an account to ``request.new_balance``.

        The delta is computed under the row lock and recorded like any other
        adjustment, including a zero delta.
        """
        require_admin(principal)
        return await self._run_adjustment(
            account_id, "set", request.new_balance, request.reason
        )

    # ------------------------------------------------------------------
    # Deposits and withdrawals
    # ------------------------------------------------------------------

    async def _lock_pending(
        self, repo: DepositRepository | WithdrawalRepository, entity: str, request_id: int
    ) -> Deposit | Withdrawal:
        row = await repo.lock_by_id(request_id)
        if row is None:
            raise NotFoundError(entity, request_id)
        if row.status != RequestStatus.PENDING.value:
            raise AlreadyProcessedError(
                f"{entity} {request_id} already processed (status: {row.status})"
            )
        return row

    async def approve_deposit(
        self, principal: Principal, deposit_id: int
    ) -> RequestDecision:
        """
        Credit a pending deposit and mark it completed.

        Raises:
            NotFoundError: Unknown deposit
            AlreadyProcessedError: Deposit not pending
        """
        require_admin(principal)

        async def _approve(session: AsyncSession) -> RequestDecision:
            deposit = await self._lock_pending(
                DepositRepository(session), "Deposit", deposit_id
            )
            amount = to_money(deposit.amount)
            change = await BalanceMutator(session, self.store.clock).adjust_balance(
                deposit.account_id,
                amount,
                TransactionType.DEPOSIT,
                f"Bank deposit approved - {deposit.bank_name}",
                log_action=SystemAction.DEPOSIT_APPROVED,
                log_description=(
                    f"Deposit {deposit.id} of {format_kz(amount)} approved "
                    f"for account {deposit.account_id}"
                ),
            )
            deposit.status = RequestStatus.COMPLETED.value
            deposit.processed_at = self.now()
            await session.flush()
            return RequestDecision(
                request_id=deposit.id,
                account_id=deposit.account_id,
                status=deposit.status,
                amount=amount,
                new_balance=change.new_balance,
            )

        decision = await self._run_recorded(
            _approve,
            label=f"approve_deposit:{deposit_id}",
            account_id=None,
            description=f"Approval of deposit {deposit_id}",
        )
        self.logger.info(
            "Deposit approved",
            extra={
                "deposit_id": deposit_id,
                "account_id": decision.account_id,
                "amount": str(decision.amount),
                "balance_after": str(decision.new_balance),
            },
        )
        return decision

    async def reject_deposit(
        self,
        principal: Principal,
        deposit_id: int,
        request: RejectionRequest | None = None,
    ) -> RequestDecision:
        """Mark a pending deposit failed. No balance change."""
        require_admin(principal)
        reason = request.reason if request else None

        async def _reject(session: AsyncSession) -> RequestDecision:
            deposit = await self._lock_pending(
                DepositRepository(session), "Deposit", deposit_id
            )
            deposit.status = RequestStatus.FAILED.value
            deposit.rejection_reason = reason
            deposit.processed_at = self.now()
            await SystemLogRepository(session).append(
                SystemAction.DEPOSIT_REJECTED,
                (
                    f"Deposit {deposit.id} of {format_kz(deposit.amount)} rejected"
                    + (f": {reason}" if reason else "")
                ),
                deposit.account_id,
                created_at=self.now(),
            )
            return RequestDecision(
                request_id=deposit.id,
                account_id=deposit.account_id,
                status=deposit.status,
                amount=to_money(deposit.amount),
            )

        return await self._run_recorded(
            _reject,
            label=f"reject_deposit:{deposit_id}",
            account_id=None,
            description=f"Rejection of deposit {deposit_id}",
        )

    async def approve_withdrawal(
        self, principal: Principal, withdrawal_id: int
    ) -> RequestDecision:
        """Mark a pending withdrawal completed. Funds were debited at request time."""
        require_admin(principal)

        async def _approve(session: AsyncSession) -> RequestDecision:
            withdrawal = await self._lock_pending(
                WithdrawalRepository(session), "Withdrawal", withdrawal_id
            )
            withdrawal.status = RequestStatus.COMPLETED.value
            withdrawal.processed_at = self.now()
            await SystemLogRepository(session).append(
                SystemAction.WITHDRAWAL_APPROVED,
                (
                    f"Withdrawal {withdrawal.id} of {format_kz(withdrawal.amount)} "
                    f"approved (net {format_kz(withdrawal.net_amount)})"
                ),
                withdrawal.account_id,
                created_at=self.now(),
            )
            return RequestDecision(
                request_id=withdrawal.id,
                account_id=withdrawal.account_id,
                status=withdrawal.status,
                amount=to_money(withdrawal.amount),
            )

        return await self._run_recorded(
            _approve,
            label=f"approve_withdrawal:{withdrawal_id}",
            account_id=None,
            description=f"Approval of withdrawal {withdrawal_id}",
        )

    async def reject_withdrawal(
        self,
        principal: Principal,
        withdrawal_id: int,
        request: RejectionRequest | None = None,
    ) -> RequestDecision:
        """Refund a pending withdrawal and mark it failed."""
        require_admin(principal)
        reason = request.reason if request else None

        async def _reject(session: AsyncSession) -> RequestDecision:
            withdrawal = await self._lock_pending(
                WithdrawalRepository(session), "Withdrawal", withdrawal_id
            )
            amount = to_money(withdrawal.amount)
            change = await BalanceMutator(session, self.store.clock).adjust_balance(
                withdrawal.account_id,
                amount,
                TransactionType.WITHDRAWAL_REFUND,
                f"Withdrawal {withdrawal.id} refunded"
                + (f": {reason}" if reason else ""),
                log_action=SystemAction.WITHDRAWAL_REJECTED,
                log_description=(
                    f"Withdrawal {withdrawal.id} rejected, {format_kz(amount)} "
                    f"returned to account {withdrawal.account_id}"
                ),
            )
            withdrawal.status = RequestStatus.FAILED.value
            withdrawal.rejection_reason = reason
            withdrawal.processed_at = self.now()
            await session.flush()
            return RequestDecision(
                request_id=withdrawal.id,
                account_id=withdrawal.account_id,
                status=withdrawal.status,
                amount=amount,
                new_balance=change.new_balance,
            )

        return await self._run_recorded(
            _reject,
            label=f"reject_withdrawal:{withdrawal_id}",
            account_id=None,
            description=f"Rejection of withdrawal {withdrawal_id}",
        )

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------

    async def cancel_purchase(
        self, principal: Principal, purchase_id: int
    ) -> CancellationResult:
        """
        Cancel a purchase, refunding the principal if it was still active.

        Raises:
            NotFoundError: Unknown purchase
            AlreadyProcessedError: Purchase already cancelled
        """
        require_admin(principal)

        async def _cancel(session: AsyncSession) -> CancellationResult:
            purchase = await PurchaseRepository(session).lock_by_id(purchase_id)
            if purchase is None:
                raise NotFoundError("Purchase", purchase_id)
            if purchase.status == PurchaseStatus.CANCELLED.value:
                raise AlreadyProcessedError(f"Purchase {purchase_id} already cancelled")

            now = self.now()
            refunded = Decimal("0")
            new_balance = None
            amount = to_money(purchase.amount)
            if purchase.is_active and amount > 0:
                change = await BalanceMutator(session, self.store.clock).adjust_balance(
                    purchase.account_id,
                    amount,
                    TransactionType.PURCHASE_REFUND,
                    f"Refund of cancelled purchase: {purchase.product_name}",
                    log_action=SystemAction.PURCHASE_CANCELLED,
                    log_description=(
                        f"Purchase {purchase.id} cancelled, {format_kz(amount)} "
                        f"refunded to account {purchase.account_id}"
                    ),
                )
                refunded = amount
                new_balance = change.new_balance
            else:
                await SystemLogRepository(session).append(
                    SystemAction.PURCHASE_CANCELLED,
                    f"Purchase {purchase.id} cancelled without refund "
                    f"(status was {purchase.status})",
                    purchase.account_id,
                    created_at=now,
                )

            purchase.status = PurchaseStatus.CANCELLED.value
            purchase.cancelled_at = now
            purchase.expiry_date = now
            await session.flush()
            return CancellationResult(
                purchase_id=purchase.id,
                account_id=purchase.account_id,
                refunded=refunded,
                new_balance=new_balance,
            )

        return await self._run_recorded(
            _cancel,
            label=f"cancel_purchase:{purchase_id}",
            account_id=None,
            description=f"Cancellation of purchase {purchase_id}",
        )

    async def grant_product(
        self,
        principal: Principal,
        account_id: int,
        request: GrantProductRequest,
    ) -> Purchase:
        """Open a gift purchase for an account without debiting it."""
        require_admin(principal)

        async def _grant(session: AsyncSession) -> Purchase:
            if await AccountRepository(session).get_by_id(account_id) is None:
                raise NotFoundError("Account", account_id)
            now = self.now()
            purchase = await PurchaseRepository(session).create(
                account_id=account_id,
                product_id=f"{ADMIN_GIFT_PRODUCT_PREFIX}{int(now.timestamp())}",
                product_name=request.product_name,
                quantity=1,
                amount=to_money(request.amount),
                daily_return=to_money(request.daily_return),
                cycle_days=request.cycle_days,
                purchase_date=now,
                next_payout=now + PAYOUT_INTERVAL,
                expiry_date=now + timedelta(days=request.cycle_days),
                status=PurchaseStatus.ACTIVE.value,
                total_earned=Decimal("0"),
                payout_count=0,
            )
            await SystemLogRepository(session).append(
                SystemAction.PRODUCT_GRANTED,
                (
                    f"Admin granted {request.product_name} to account "
                    f"{account_id} ({format_kz(request.daily_return)}/day, "
                    f"{request.cycle_days} days)"
                ),
                account_id,
                created_at=now,
            )
            return purchase

        return await self.store.run_in_transaction(
            _grant, label=f"grant_product:{account_id}"
        )

    # ------------------------------------------------------------------
    # Request queues
    # ------------------------------------------------------------------

    async def _list_requests(
        self,
        repo_class: type[DepositRepository] | type[WithdrawalRepository],
        status: str | None,
        limit: int,
        offset: int,
        label: str,
    ) -> list[RequestSummary]:
        if status is not None and status not in {s.value for s in RequestStatus}:
            raise ValidationError(f"Unknown request status: {status}")
        limit = max(1, min(limit, 500))

        async def _load(session: AsyncSession) -> list[tuple[Any, str]]:
            return await repo_class(session).list_with_mobile(
                status, limit=limit, offset=max(offset, 0)
            )

        rows = await self.store.run_in_transaction(_load, label=label)
        return [_request_summary(row, mobile) for row, mobile in rows]

    async def list_deposits(
        self,
        principal: Principal,
        status: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[RequestSummary]:
        """
        Deposit requests newest first, optionally only one status.

        Raises:
            ValidationError: ``status`` is not a request status
        """
        require_admin(principal)
        return await self._list_requests(
            DepositRepository, status, limit, offset, label="admin_deposits"
        )

    async def list_withdrawals(
        self,
        principal: Principal,
        status: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[RequestSummary]:
        """Withdrawal requests newest first, with tax and net amount."""
        require_admin(principal)
        return await self._list_requests(
            WithdrawalRepository, status, limit, offset, label="admin_withdrawals"
        )

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def list_accounts(
        self, principal: Principal, limit: int = 50, offset: int = 0
    ) -> AccountListing:
        """Accounts page with platform total count and balance."""
        require_admin(principal)
        limit = max(1, min(limit, 500))

        async def _load(session: AsyncSession) -> AccountListing:
            accounts = AccountRepository(session)
            rows = await accounts.list_with_counts(limit=limit, offset=max(offset, 0))
            return AccountListing(
                accounts=[
                    AccountSummary(
                        account_id=account.id,
                        mobile=account.mobile,
                        balance=to_money(account.balance),
                        referral_code=account.referral_code,
                        created_at=ensure_utc(account.created_at),
                        purchase_count=purchase_count,
                        referral_count=referral_count,
                    )
                    for account, purchase_count, referral_count in rows
                ],
                total=await accounts.count(),
                total_balance=await accounts.total_balance(),
            )

        return await self.store.run_in_transaction(_load, label="admin_accounts")

    async def account_full_data(
        self, principal: Principal, account_id: int
    ) -> AccountFullData:
        """
        Profile, purchases, ledger, requests, network and check-ins of an account.

        Transactions are capped at the latest 100 and check-ins at 30.

        Raises:
            NotFoundError: Unknown account
        """
        require_admin(principal)

        async def _load(session: AsyncSession) -> AccountFullData:
            account = await AccountRepository(session).get_by_id(account_id)
            if account is None:
                raise NotFoundError("Account", account_id)

            deposits = await DepositRepository(session).find_all(account_id=account_id)
            withdrawals = await WithdrawalRepository(session).find_all(
                account_id=account_id
            )
            downline = await ReferralLevelRepository(session).get_downline(account_id)
            return AccountFullData(
                profile=AccountProfile(
                    account_id=account.id,
                    mobile=account.mobile,
                    referral_code=account.referral_code,
                    balance=to_money(account.balance),
                    inviter_id=account.inviter_id,
                    created_at=ensure_utc(account.created_at),
                ),
                purchases=await PurchaseRepository(session).find_by_account(account_id),
                transactions=await TransactionRepository(session).list_for_account(
                    account_id, limit=100
                ),
                deposits=[_request_summary(d, account.mobile) for d in deposits],
                withdrawals=[_request_summary(w, account.mobile) for w in withdrawals],
                referral_network=[
                    ReferralMember(
                        level=edge.level,
                        account_id=member.id,
                        mobile=member.mobile,
                        balance=to_money(member.balance),
                        joined_at=ensure_utc(member.created_at),
                    )
                    for edge, member in downline
                ],
                checkins=await DailyCheckinRepository(session).find_all(
                    limit=30, account_id=account_id
                ),
                bank_account=await BankAccountRepository(session).get_for_account(
                    account_id
                ),
            )

        return await self.store.run_in_transaction(
            _load, label=f"admin_full_data:{account_id}"
        )

    async def delete_account(
        self, principal: Principal, account_id: int
    ) -> dict[str, int]:
        """
        Delete an account and everything it owns.

        Invitees keep their account with ``inviter_id`` cleared. SystemLog
        rows are kept.

        Returns:
            Number of deleted rows per table
        """
        require_admin(principal)

        async def _delete(session: AsyncSession) -> dict[str, int]:
            accounts = AccountRepository(session)
            account = await accounts.lock_by_id(account_id)
            if account is None:
                raise NotFoundError("Account", account_id)
            mobile = account.mobile

            counts = {
                "referral_bonuses": await ReferralBonusRepository(session).delete_for_account(account_id),
                "referral_levels": await ReferralLevelRepository(session).delete_for_account(account_id),
                "invitees_detached": await accounts.detach_invitees(account_id),
                "transactions": await TransactionRepository(session).delete_where(
                    Transaction.account_id == account_id
                ),
                "daily_checkins": await DailyCheckinRepository(session).delete_where(
                    DailyCheckin.account_id == account_id
                ),
                "deposits": await DepositRepository(session).delete_where(
                    Deposit.account_id == account_id
                ),
                "withdrawals": await WithdrawalRepository(session).delete_where(
                    Withdrawal.account_id == account_id
                ),
                "purchases": await PurchaseRepository(session).delete_where(
                    Purchase.account_id == account_id
                ),
                "bank_accounts": await BankAccountRepository(session).delete_where(
                    BankAccount.account_id == account_id
                ),
            }
            await accounts.delete_where(Account.id == account_id)

            await SystemLogRepository(session).append(
                SystemAction.ACCOUNT_DELETED,
                f"Account {mobile} (id {account_id}) deleted by admin: {counts}",
                account_id,
                created_at=self.now(),
            )
            return counts

        counts = await self.store.run_in_transaction(
            _delete, label=f"delete_account:{account_id}"
        )
        self.logger.warning(
            "Account deleted", extra={"account_id": account_id, **counts}
        )
        return counts

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    @log_operation
    async def bulk_balance(
        self, principal: Principal, request: BulkBalanceRequest
    ) -> BulkResult:
        """
        Apply a batch of adjustments, one atomic unit per item.

        A failed item is collected in ``errors`` and never stops the others.
        """
        require_admin(principal)
        bulk = BulkResult()

        for index, op in enumerate(request.operations):
            try:
                result = await self._run_adjustment(
                    op.account_id, op.action, op.amount, op.reason or "bulk adjustment"
                )
            except Exception as e:
                self.logger.error(
                    f"Bulk item {index} failed: {e}",
                    extra={"account_id": op.account_id, "action": op.action},
                )
                bulk.errors.append(_bulk_error(index, op, e))
                continue

            bulk.results.append(result)
            if op.action == "add":
                bulk.total_added += result.delta
            elif op.action == "deduct":
                bulk.total_deducted += -result.delta
            else:
                bulk.total_set += 1

        await self.store.audit(
            SystemAction.BULK_BALANCE_ADJUSTMENT,
            (
                f"Bulk adjustment: {bulk.succeeded} succeeded, {bulk.failed} failed; "
                f"added {format_kz(bulk.total_added)}, deducted "
                f"{format_kz(bulk.total_deducted)}, set {bulk.total_set}"
            ),
        )
        return bulk

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def statistics(self, principal: Principal) -> PlatformStatistics:
        """Platform-wide counts and totals."""
        require_admin(principal)

        async def _load(session: AsyncSession) -> PlatformStatistics:
            accounts = AccountRepository(session)
            purchases = PurchaseRepository(session)
            return PlatformStatistics(
                accounts=await accounts.count(),
                total_balance=await accounts.total_balance(),
                purchases_by_status=await purchases.count_by_status(),
                total_invested=await purchases.total_invested(),
                deposits_by_status=await DepositRepository(session).count_by_status(),
                withdrawals_by_status=await WithdrawalRepository(session).count_by_status(),
                transaction_totals=await TransactionRepository(session).totals_by_type(),
            )

        return await self.store.run_in_transaction(_load, label="admin_statistics")

    async def _reconcile(
        self, session: AsyncSession, account_id: int
    ) -> ReconciliationReport:
        account = await AccountRepository(session).get_by_id(account_id)
        if account is None:
            raise NotFoundError("Account", account_id)
        transactions = TransactionRepository(session)
        last = await transactions.last_for_account(account_id)
        return ReconciliationReport(
            account_id=account_id,
            balance=to_money(account.balance),
            initial_balance=to_money(account.initial_balance),
            transaction_sum=await transactions.sum_for_account(account_id),
            transaction_count=await transactions.count_for_account(account_id),
            last_balance_after=to_money(last.balance_after) if last else None,
        )

    async def reconcile(
        self, principal: Principal, account_id: int
    ) -> ReconciliationReport:
        """Check one account's balance against its ledger."""
        require_admin(principal)
        report = await self.store.run_in_transaction(
            partial(self._reconcile, account_id=account_id),
            label=f"reconcile:{account_id}",
        )
        if not report.is_consistent:
            self.logger.error(
                "Ledger mismatch",
                extra={
                    "account_id": account_id,
                    "balance": str(report.balance),
                    "expected": str(report.expected_balance),
                    "last_balance_after": str(report.last_balance_after),
                },
            )
        return report

    @log_operation
    async def reconcile_all(
        self, principal: Principal
    ) -> list[ReconciliationReport]:
        """Reconcile every account; returns only inconsistent reports."""
        require_admin(principal)

        async def _ids(session: AsyncSession) -> list[int]:
            return await AccountRepository(session).list_ids()

        mismatches = []
        for account_id in await self.store.run_in_transaction(_ids, label="reconcile_ids"):
            report = await self.reconcile(principal, account_id)
            if not report.is_consistent:
                mismatches.append(report)
        return mismatches

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute(self, principal: Principal, action: AdminAction) -> Any:
        """
        Run one admin action variant.

        Returns:
            AdjustmentResult, CheckinResult or PayoutBatchResult depending
            on the action kind
        """
        require_admin(principal)
        handlers = {
            AddBalanceAction: self._execute_add,
            DeductBalanceAction: self._execute_deduct,
            SetBalanceAction: self._execute_set,
            SimulateCheckinAction: self._execute_checkin,
            SimulateCollectIncomeAction: self._execute_collect,
        }
        self.logger.info(
            f"Executing admin action {action.kind}",
            extra={"kind": action.kind, "account_id": action.account_id},
        )
        return await handlers[type(action)](principal, action)

    async def _execute_add(self, principal, action: AddBalanceAction):
        return await self.add_balance(
            principal,
            action.account_id,
            AmountRequest(amount=action.amount, reason=action.reason),
        )

    async def _execute_deduct(self, principal, action: DeductBalanceAction):
        return await self.deduct_balance(
            principal,
            action.account_id,
            AmountRequest(amount=action.amount, reason=action.reason),
        )

    async def _execute_set(self, principal, action: SetBalanceAction):
        return await self.set_balance(
            principal,
            action.account_id,
            SetBalanceRequest(new_balance=action.new_balance, reason=action.reason),
        )

    async def _execute_checkin(self, principal, action: SimulateCheckinAction):
        return await IncomeService(self.store).daily_checkin(
            principal, action.account_id, source="admin"
        )

    async def _execute_collect(self, principal, action: SimulateCollectIncomeAction):
        return await PayoutEngine(self.store).collect_all(principal, action.account_id)


def _bulk_error(index: int, op: BulkOperation, error: Exception) -> BulkItemError:
    return BulkItemError(
        index=index, account_id=op.account_id, action=op.action, error=str(error)
    )


def _request_summary(row: Deposit | Withdrawal, mobile: str) -> RequestSummary:
    summary = RequestSummary(
        request_id=row.id,
        account_id=row.account_id,
        mobile=mobile,
        amount=to_money(row.amount),
        status=row.status,
        account_name=row.account_name,
        iban=row.iban,
        bank_name=row.bank_name,
        created_at=ensure_utc(row.created_at),
        processed_at=ensure_utc(row.processed_at),
        rejection_reason=row.rejection_reason,
    )
    if isinstance(row, Withdrawal):
        summary.tax = to_money(row.tax)
        summary.net_amount = to_money(row.net_amount)
    return summary
