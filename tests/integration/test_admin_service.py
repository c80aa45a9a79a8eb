"""
Integration tests for administrator operations.
"""

from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from yieldledger.models.account import Account
from yieldledger.models.enums import SystemAction, TransactionType
from yieldledger.repositories.account_repository import AccountRepository
from yieldledger.repositories.purchase_repository import PurchaseRepository
from yieldledger.repositories.referral_repository import ReferralLevelRepository
from yieldledger.repositories.system_log_repository import SystemLogRepository
from yieldledger.repositories.transaction_repository import TransactionRepository
from yieldledger.services.admin.actions import parse_admin_action
from yieldledger.services.balance_mutator import BalanceMutator
from yieldledger.services.bank_account_service import BankAccountService
from yieldledger.services.deposit_service import DepositService
from yieldledger.services.income_service import CheckinResult
from yieldledger.services.payout.engine import PayoutBatchResult, PayoutEngine
from yieldledger.services.portfolio_service import PortfolioService
from yieldledger.services.purchase_service import PurchaseWorkflow
from yieldledger.services.withdrawal_service import WithdrawalService
from yieldledger.utils.exceptions import (
    AlreadyProcessedError,
    AtomicUnitError,
    AuthorizationError,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from yieldledger.utils.security import AccountPrincipal, SystemPrincipal
from yieldledger.validators.requests import (
    AmountRequest,
    BankAccountRequest,
    BulkBalanceRequest,
    DepositRequest,
    GrantProductRequest,
    PurchaseRequest,
    SetBalanceRequest,
    WithdrawalRequest,
)


async def _count(store, account_id):
    return await store.run_in_transaction(
        lambda s: TransactionRepository(s).count_for_account(account_id),
        label="test",
    )


async def _buy(store, account, amount="200"):
    result = await PurchaseWorkflow(store).purchase(
        AccountPrincipal(account_id=account.account_id),
        account.account_id,
        PurchaseRequest(product_id="basic", product_name="Basic", amount=amount),
    )
    return result.purchase_id


async def _failure_logs(store):
    return await store.run_in_transaction(
        lambda s: SystemLogRepository(s).recent_by_actions(
            [SystemAction.ATOMIC_UNIT_FAILED]
        ),
        label="test",
    )


class TestBalanceAdjustments:
    """Test add / deduct / set."""

    @pytest.mark.asyncio
    async def test_deduct_more_than_balance_is_rejected(
        self, store, make_account, admin_service, admin
    ):
        account = await make_account(balance="150")
        before = await _count(store, account.account_id)

        with pytest.raises(InsufficientFundsError):
            await admin_service.deduct_balance(
                admin, account.account_id, AmountRequest(amount="200")
            )

        assert await _count(store, account.account_id) == before
        report = await admin_service.reconcile(admin, account.account_id)
        assert report.balance == Decimal("150.00")
        assert report.is_consistent

    @pytest.mark.asyncio
    async def test_add_and_deduct(self, make_account, admin_service, admin):
        account = await make_account()

        added = await admin_service.add_balance(
            admin, account.account_id, AmountRequest(amount="75.50", reason="bonus")
        )
        deducted = await admin_service.deduct_balance(
            admin, account.account_id, AmountRequest(amount="25.50")
        )

        assert added.previous_balance == Decimal("500.00")
        assert added.new_balance == Decimal("575.50")
        assert deducted.delta == Decimal("-25.50")
        assert deducted.new_balance == Decimal("550.00")

    @pytest.mark.asyncio
    async def test_set_balance_records_delta(
        self, store, make_account, admin_service, admin
    ):
        account = await make_account()

        down = await admin_service.set_balance(
            admin, account.account_id, SetBalanceRequest(new_balance="0")
        )
        up = await admin_service.set_balance(
            admin, account.account_id, SetBalanceRequest(new_balance="750")
        )

        assert down.delta == Decimal("-500.00")
        assert down.new_balance == Decimal("0.00")
        assert up.delta == Decimal("750.00")

        entries = await store.run_in_transaction(
            lambda s: TransactionRepository(s).list_for_account(account.account_id),
            label="test",
        )
        assert [e.type for e in entries] == [
            TransactionType.ADMIN_ADDITION,
            TransactionType.ADMIN_DEDUCTION,
        ]
        assert (await admin_service.reconcile(admin, account.account_id)).is_consistent

    @pytest.mark.asyncio
    async def test_requires_admin(self, make_account, admin_service):
        account = await make_account()

        for principal in (
            AccountPrincipal(account_id=account.account_id),
            SystemPrincipal(),
        ):
            with pytest.raises(AuthorizationError):
                await admin_service.add_balance(
                    principal, account.account_id, AmountRequest(amount="10")
                )

    @pytest.mark.asyncio
    async def test_unknown_account(self, admin_service, admin):
        with pytest.raises(NotFoundError):
            await admin_service.add_balance(admin, 404, AmountRequest(amount="10"))

    @pytest.mark.asyncio
    async def test_store_failure_is_logged(
        self, store, make_account, admin_service, admin, monkeypatch
    ):
        account = await make_account()

        async def _broken(self, *args, **kwargs):
            raise OperationalError("UPDATE accounts", {}, Exception("disk I/O error"))

        monkeypatch.setattr(BalanceMutator, "adjust_balance", _broken)
        with pytest.raises(AtomicUnitError):
            await admin_service.add_balance(
                admin, account.account_id, AmountRequest(amount="10")
            )

        logs = await _failure_logs(store)
        assert len(logs) == 1
        assert logs[0].account_id == account.account_id
        assert "Admin add" in logs[0].description
        assert await _count(store, account.account_id) == 0


class TestBulkBalance:
    """Test bulk adjustments with per-item isolation."""

    @pytest.mark.asyncio
    async def test_mixed_batch(self, store, make_account, admin_service, admin):
        first = await make_account()
        second = await make_account(balance="100")

        request = BulkBalanceRequest.model_validate(
            {
                "operations": [
                    {"account_id": first.account_id, "action": "add", "amount": "50"},
                    {"account_id": second.account_id, "action": "deduct", "amount": "150"},
                    {"account_id": 404, "action": "add", "amount": "10"},
                    {"account_id": second.account_id, "action": "set", "amount": "20"},
                    {"account_id": first.account_id, "action": "deduct", "amount": "30"},
                ]
            }
        )

        result = await admin_service.bulk_balance(admin, request)

        assert result.succeeded == 3
        assert result.failed == 2
        assert [e.index for e in result.errors] == [1, 2]
        assert result.total_added == Decimal("50.00")
        assert result.total_deducted == Decimal("30.00")
        assert result.total_set == 1

        logs = await store.run_in_transaction(
            lambda s: SystemLogRepository(s).recent_by_actions(
                [SystemAction.BULK_BALANCE_ADJUSTMENT]
            ),
            label="test",
        )
        assert len(logs) == 1
        assert await admin_service.reconcile_all(admin) == []


class TestPurchasesAdmin:
    """Test cancellation and gifts."""

    @pytest.mark.asyncio
    async def test_cancel_active_purchase_refunds(
        self, store, make_account, admin_service, admin
    ):
        account = await make_account()
        purchase_id = await _buy(store, account)

        result = await admin_service.cancel_purchase(admin, purchase_id)

        assert result.refunded == Decimal("200.00")
        assert result.new_balance == Decimal("500.00")
        purchase = await store.run_in_transaction(
            lambda s: PurchaseRepository(s).get_by_id(purchase_id), label="test"
        )
        assert purchase.status == "cancelled"
        assert purchase.cancelled_at is not None

        with pytest.raises(AlreadyProcessedError):
            await admin_service.cancel_purchase(admin, purchase_id)

    @pytest.mark.asyncio
    async def test_cancel_completed_purchase_has_no_refund(
        self, store, clock, make_account, admin_service, admin
    ):
        account = await make_account()
        purchase_id = await _buy(store, account)

        async def _complete(session):
            purchase = await PurchaseRepository(session).get_by_id(purchase_id)
            purchase.status = "completed"
            await session.flush()

        await store.run_in_transaction(_complete, label="test")

        result = await admin_service.cancel_purchase(admin, purchase_id)

        assert result.refunded == Decimal("0")
        assert result.new_balance is None

    @pytest.mark.asyncio
    async def test_grant_product_without_debit(
        self, store, clock, make_account, admin_service, admin, system
    ):
        account = await make_account()

        gift = await admin_service.grant_product(
            admin,
            account.account_id,
            GrantProductRequest(product_name="Welcome gift", daily_return="20", cycle_days=7),
        )

        assert gift.product_id.startswith("admin_gift_")
        assert gift.amount == Decimal("0")
        assert await _count(store, account.account_id) == 0

        clock.advance(hours=24)
        batch = await PayoutEngine(store).process_due_payouts(system)
        assert batch.total_amount == Decimal("20.00")

        stats = await PortfolioService(store).package_stats(admin, account.account_id)
        assert stats.total_packages == 1
        assert stats.active_packages == 1
        assert stats.daily_income == Decimal("20.00")
        assert stats.total_earned == Decimal("20.00")
        assert stats.total_invested == Decimal("0.00")

        views = await PortfolioService(store).list_purchases(admin, account.account_id)
        assert views[0].payout_count == 1
        assert views[0].total_return == Decimal("140.00")


BANK = {
    "account_name": "Maria Silva",
    "iban": "AO06004400006729503010102",
    "bank_name": "BAI",
}


class TestRequestQueues:
    """Test the deposit and withdrawal queues."""

    @pytest.mark.asyncio
    async def test_pending_deposits(self, store, make_account, admin_service, admin):
        account = await make_account(mobile="923111222")
        deposits = DepositService(store)
        first = await deposits.request_deposit(
            admin, account.account_id, DepositRequest(amount="1000", **BANK)
        )
        second = await deposits.request_deposit(
            admin, account.account_id, DepositRequest(amount="2500", **BANK)
        )
        await admin_service.approve_deposit(admin, first.id)

        pending = await admin_service.list_deposits(admin, status="pending")
        assert [d.request_id for d in pending] == [second.id]
        assert pending[0].mobile == "923111222"
        assert pending[0].amount == Decimal("2500.00")
        assert pending[0].tax is None

        everything = await admin_service.list_deposits(admin)
        assert [d.request_id for d in everything] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_pending_withdrawals(
        self, store, make_account, admin_service, admin
    ):
        account = await make_account()
        withdrawals = WithdrawalService(store)
        first = await withdrawals.request_withdrawal(
            admin, account.account_id, WithdrawalRequest(amount="100", **BANK)
        )
        second = await withdrawals.request_withdrawal(
            admin, account.account_id, WithdrawalRequest(amount="200", tax="20", **BANK)
        )
        await admin_service.reject_withdrawal(admin, first.id)

        pending = await admin_service.list_withdrawals(admin, status="pending")
        assert [w.request_id for w in pending] == [second.id]
        assert pending[0].tax == Decimal("20.00")
        assert pending[0].net_amount == Decimal("180.00")

        failed = await admin_service.list_withdrawals(admin, status="failed")
        assert [w.request_id for w in failed] == [first.id]

    @pytest.mark.asyncio
    async def test_unknown_status(self, admin_service, admin):
        with pytest.raises(ValidationError):
            await admin_service.list_deposits(admin, status="approved")

    @pytest.mark.asyncio
    async def test_requires_admin(self, make_account, admin_service):
        account = await make_account()
        principal = AccountPrincipal(account_id=account.account_id)

        with pytest.raises(AuthorizationError):
            await admin_service.list_deposits(principal)
        with pytest.raises(AuthorizationError):
            await admin_service.list_withdrawals(principal, status="pending")

    @pytest.mark.asyncio
    async def test_failed_approval_keeps_deposit_pending(
        self, store, make_account, admin_service, admin, monkeypatch
    ):
        account = await make_account()
        deposit = await DepositService(store).request_deposit(
            admin, account.account_id, DepositRequest(amount="1000", **BANK)
        )

        async def _broken(self, *args, **kwargs):
            raise OperationalError("UPDATE accounts", {}, Exception("database is locked"))

        monkeypatch.setattr(BalanceMutator, "adjust_balance", _broken)
        with pytest.raises(AtomicUnitError):
            await admin_service.approve_deposit(admin, deposit.id)

        pending = await admin_service.list_deposits(admin, status="pending")
        assert [d.request_id for d in pending] == [deposit.id]
        logs = await _failure_logs(store)
        assert len(logs) == 1
        assert f"deposit {deposit.id}" in logs[0].description


class TestAccountViews:
    """Test the account listing and the full-data view."""

    @pytest.mark.asyncio
    async def test_list_accounts(self, store, make_account, admin_service, admin):
        inviter = await make_account()
        invitee = await make_account(inviter=inviter)
        await make_account(inviter=invitee)
        await _buy(store, inviter)

        listing = await admin_service.list_accounts(admin)

        assert listing.total == 3
        assert listing.total_balance == sum(a.balance for a in listing.accounts)
        by_id = {a.account_id: a for a in listing.accounts}
        assert by_id[inviter.account_id].purchase_count == 1
        # levels 1 and 2
        assert by_id[inviter.account_id].referral_count == 2
        assert by_id[invitee.account_id].referral_count == 1
        assert listing.accounts[0].account_id > listing.accounts[-1].account_id

        page = await admin_service.list_accounts(admin, limit=1, offset=1)
        assert [a.account_id for a in page.accounts] == [invitee.account_id]
        assert page.total == 3

    @pytest.mark.asyncio
    async def test_full_data(self, store, make_account, admin_service, admin):
        owner = await make_account()
        invitee = await make_account(inviter=owner)
        principal = AccountPrincipal(account_id=owner.account_id)
        await _buy(store, owner)
        await DepositService(store).request_deposit(
            principal, owner.account_id, DepositRequest(amount="1000", **BANK)
        )
        await BankAccountService(store).create_bank_account(
            principal,
            owner.account_id,
            BankAccountRequest(
                bank_name="BAI",
                account_holder="Maria Silva",
                account_number="AO06004400006729503010102",
                branch_code="0044",
            ),
        )

        data = await admin_service.account_full_data(admin, owner.account_id)

        assert data.profile.account_id == owner.account_id
        assert len(data.purchases) == 1
        assert [t.type for t in data.transactions] == [TransactionType.PURCHASE]
        assert data.deposits[0].status == "pending"
        assert data.deposits[0].mobile == owner.mobile
        assert data.withdrawals == []
        assert [(m.level, m.account_id) for m in data.referral_network] == [
            (1, invitee.account_id)
        ]
        assert data.checkins == []
        assert data.bank_account.branch_code == "0044"

    @pytest.mark.asyncio
    async def test_full_data_unknown(self, admin_service, admin):
        with pytest.raises(NotFoundError):
            await admin_service.account_full_data(admin, 404)

    @pytest.mark.asyncio
    async def test_requires_admin(self, make_account, admin_service):
        account = await make_account()

        with pytest.raises(AuthorizationError):
            await admin_service.list_accounts(AccountPrincipal(account_id=account.account_id))
        with pytest.raises(AuthorizationError):
            await admin_service.account_full_data(
                AccountPrincipal(account_id=account.account_id), account.account_id
            )


class TestDeleteAccount:
    """Test account deletion."""

    @pytest.mark.asyncio
    async def test_delete_detaches_invitees(
        self, store, make_account, admin_service, admin
    ):
        inviter = await make_account()
        invitee = await make_account(inviter=inviter)
        await _buy(store, inviter)
        await _buy(store, invitee)

        counts = await admin_service.delete_account(admin, inviter.account_id)

        assert counts["purchases"] == 1
        assert counts["invitees_detached"] == 1
        assert counts["referral_levels"] == 1
        assert counts["referral_bonuses"] == 1

        async def _load(session):
            accounts = AccountRepository(session)
            return (
                await accounts.get_by_id(inviter.account_id),
                await accounts.get_by_id(invitee.account_id),
                await ReferralLevelRepository(session).count(
                    account_id=invitee.account_id
                ),
            )

        deleted, survivor, edges = await store.run_in_transaction(_load, label="test")
        assert deleted is None
        assert survivor.inviter_id is None
        assert edges == 0

        logs = await store.run_in_transaction(
            lambda s: SystemLogRepository(s).recent_by_actions(
                [SystemAction.ACCOUNT_DELETED]
            ),
            label="test",
        )
        assert logs[0].account_id == inviter.account_id
        assert await admin_service.reconcile_all(admin) == []

    @pytest.mark.asyncio
    async def test_delete_removes_bank_account(
        self, store, make_account, admin_service, admin
    ):
        account = await make_account()
        service = BankAccountService(store)
        await service.create_bank_account(
            admin,
            account.account_id,
            BankAccountRequest(
                bank_name="BFA",
                account_holder="Joao Costa",
                account_number="AO06000600000100037131174",
                branch_code="0006",
            ),
        )

        counts = await admin_service.delete_account(admin, account.account_id)

        assert counts["bank_accounts"] == 1
        assert await service.get_bank_account(admin, account.account_id) is None

    @pytest.mark.asyncio
    async def test_delete_unknown(self, admin_service, admin):
        with pytest.raises(NotFoundError):
            await admin_service.delete_account(admin, 404)


class TestReporting:
    """Test statistics and reconciliation."""

    @pytest.mark.asyncio
    async def test_reconcile_detects_direct_balance_write(
        self, store, make_account, admin_service, admin
    ):
        healthy = await make_account(balance="900")
        tampered = await make_account()

        async def _tamper(session):
            await session.execute(
                update(Account)
                .where(Account.id == tampered.account_id)
                .values(balance=Decimal("9999"))
            )

        await store.run_in_transaction(_tamper, label="test")

        mismatches = await admin_service.reconcile_all(admin)

        assert [m.account_id for m in mismatches] == [tampered.account_id]
        assert mismatches[0].expected_balance == Decimal("500.00")
        assert (await admin_service.reconcile(admin, healthy.account_id)).is_consistent

    @pytest.mark.asyncio
    async def test_statistics(self, store, make_account, admin_service, admin):
        first = await make_account()
        await make_account(inviter=first)
        await _buy(store, first)

        stats = await admin_service.statistics(admin)

        assert stats.accounts == 2
        assert stats.purchases_by_status == {"active": 1}
        assert stats.total_invested == Decimal("200.00")
        assert stats.total_balance == Decimal("800.00")
        assert stats.transaction_totals["purchase"] == Decimal("-200.00")


class TestExecute:
    """Test admin action dispatch."""

    @pytest.mark.asyncio
    async def test_dispatch_by_kind(self, store, clock, make_account, admin_service, admin):
        account = await make_account()
        await _buy(store, account)

        added = await admin_service.execute(
            admin,
            parse_admin_action(
                {"kind": "add_balance", "account_id": account.account_id, "amount": "5"}
            ),
        )
        assert added.new_balance == Decimal("305.00")

        checkin = await admin_service.execute(
            admin,
            parse_admin_action(
                {"kind": "simulate_checkin", "account_id": account.account_id}
            ),
        )
        assert isinstance(checkin, CheckinResult)
        assert checkin.new_balance == Decimal("315.00")

        clock.advance(hours=24)
        collected = await admin_service.execute(
            admin,
            parse_admin_action(
                {"kind": "simulate_collect_income", "account_id": account.account_id}
            ),
        )
        assert isinstance(collected, PayoutBatchResult)
        assert collected.processed == 1

        reset = await admin_service.execute(
            admin,
            parse_admin_action(
                {"kind": "set_balance", "account_id": account.account_id, "new_balance": "0"}
            ),
        )
        assert reset.new_balance == Decimal("0.00")
        assert (await admin_service.reconcile(admin, account.account_id)).is_consistent

    @pytest.mark.asyncio
    async def test_execute_requires_admin(self, make_account, admin_service):
        account = await make_account()
        action = parse_admin_action(
            {"kind": "add_balance", "account_id": account.account_id, "amount": "5"}
        )

        with pytest.raises(AuthorizationError):
            await admin_service.execute(
                AccountPrincipal(account_id=account.account_id), action
            )
