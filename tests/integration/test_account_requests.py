"""
Integration tests for check-ins, deposits, withdrawals and saved bank accounts.
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from yieldledger.models.enums import SystemAction, TransactionType
from yieldledger.repositories.system_log_repository import SystemLogRepository
from yieldledger.repositories.transaction_repository import TransactionRepository
from yieldledger.services.bank_account_service import BankAccountService
from yieldledger.services.deposit_service import DepositService
from yieldledger.services.income_service import IncomeService
from yieldledger.services.withdrawal_service import WithdrawalService
from yieldledger.utils.exceptions import (
    AlreadyProcessedError,
    AuthorizationError,
    BusinessRuleError,
    DuplicateCollectionError,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from yieldledger.utils.security import AccountPrincipal
from yieldledger.validators.requests import (
    BankAccountRequest,
    DepositRequest,
    RejectionRequest,
    WithdrawalRequest,
)


BANK = {
    "account_name": "Maria Silva",
    "iban": "AO06004400006729503010102",
    "bank_name": "BAI",
}


async def _count(store, account_id):
    return await store.run_in_transaction(
        lambda s: TransactionRepository(s).count_for_account(account_id),
        label="test",
    )


class TestDailyCheckin:
    """Test IncomeService.daily_checkin."""

    @pytest.mark.asyncio
    async def test_once_per_local_day(self, store, clock, make_account):
        account = await make_account()
        principal = AccountPrincipal(account_id=account.account_id)
        income = IncomeService(store)

        first = await income.daily_checkin(principal, account.account_id)
        assert first.amount == Decimal("10")
        assert first.new_balance == Decimal("510.00")

        with pytest.raises(DuplicateCollectionError):
            await income.daily_checkin(principal, account.account_id)
        assert await _count(store, account.account_id) == 1

        # 12:00 UTC + 11h = 00:00 next day in Luanda
        clock.advance(hours=11)
        second = await income.daily_checkin(principal, account.account_id)
        assert second.new_balance == Decimal("520.00")
        assert second.next_checkin > clock.current

    @pytest.mark.asyncio
    async def test_unknown_account(self, store, admin):
        with pytest.raises(NotFoundError):
            await IncomeService(store).daily_checkin(admin, 404)


class TestDeposits:
    """Test deposit request, approval and rejection."""

    @pytest.mark.asyncio
    async def test_minimum_amount(self, store, make_account):
        account = await make_account()

        with pytest.raises(ValidationError):
            await DepositService(store).request_deposit(
                AccountPrincipal(account_id=account.account_id),
                account.account_id,
                DepositRequest(amount="999.99", **BANK),
            )

    @pytest.mark.asyncio
    async def test_approve_credits_once(self, store, make_account, admin_service, admin):
        account = await make_account()
        deposits = DepositService(store)
        deposit = await deposits.request_deposit(
            AccountPrincipal(account_id=account.account_id),
            account.account_id,
            DepositRequest(amount="1500", **BANK),
        )
        assert deposit.status == "pending"
        assert await _count(store, account.account_id) == 0

        decision = await admin_service.approve_deposit(admin, deposit.id)

        assert decision.status == "completed"
        assert decision.new_balance == Decimal("2000.00")
        last = await store.run_in_transaction(
            lambda s: TransactionRepository(s).last_for_account(account.account_id),
            label="test",
        )
        assert last.type == TransactionType.DEPOSIT
        assert last.amount == Decimal("1500.00")

        with pytest.raises(AlreadyProcessedError):
            await admin_service.approve_deposit(admin, deposit.id)
        with pytest.raises(AlreadyProcessedError):
            await admin_service.reject_deposit(admin, deposit.id)
        assert await _count(store, account.account_id) == 1

        listed = await deposits.list_deposits(admin, account.account_id)
        assert [d.status for d in listed] == ["completed"]

    @pytest.mark.asyncio
    async def test_reject_has_no_balance_effect(
        self, store, make_account, admin_service, admin
    ):
        account = await make_account()
        deposit = await DepositService(store).request_deposit(
            admin, account.account_id, DepositRequest(amount="1000", **BANK)
        )

        decision = await admin_service.reject_deposit(
            admin, deposit.id, RejectionRequest(reason="Transfer not found")
        )

        assert decision.status == "failed"
        assert decision.new_balance is None
        assert await _count(store, account.account_id) == 0

    @pytest.mark.asyncio
    async def test_unknown_deposit(self, admin_service, admin):
        with pytest.raises(NotFoundError):
            await admin_service.approve_deposit(admin, 404)


class TestWithdrawals:
    """Test withdrawal request, approval and rejection."""

    @pytest.mark.asyncio
    async def test_request_debits_gross_amount(self, store, make_account):
        account = await make_account()

        withdrawal = await WithdrawalService(store).request_withdrawal(
            AccountPrincipal(account_id=account.account_id),
            account.account_id,
            WithdrawalRequest(amount="300", tax="30", **BANK),
        )

        assert withdrawal.status == "pending"
        assert withdrawal.net_amount == Decimal("270.00")
        last = await store.run_in_transaction(
            lambda s: TransactionRepository(s).last_for_account(account.account_id),
            label="test",
        )
        assert last.type == TransactionType.WITHDRAWAL
        assert last.amount == Decimal("-300.00")
        assert last.balance_after == Decimal("200.00")

    @pytest.mark.asyncio
    async def test_insufficient_funds(self, store, make_account):
        account = await make_account()

        with pytest.raises(InsufficientFundsError):
            await WithdrawalService(store).request_withdrawal(
                AccountPrincipal(account_id=account.account_id),
                account.account_id,
                WithdrawalRequest(amount="500.01", **BANK),
            )

        assert await _count(store, account.account_id) == 0
        withdrawals = await WithdrawalService(store).list_withdrawals(
            AccountPrincipal(account_id=account.account_id), account.account_id
        )
        assert withdrawals == []

    @pytest.mark.asyncio
    async def test_reject_refunds(
        self, store, make_account, admin_service, admin, account_service
    ):
        account = await make_account()
        withdrawal = await WithdrawalService(store).request_withdrawal(
            admin, account.account_id, WithdrawalRequest(amount="300", **BANK)
        )

        decision = await admin_service.reject_withdrawal(
            admin, withdrawal.id, RejectionRequest(reason="IBAN mismatch")
        )

        assert decision.status == "failed"
        assert decision.new_balance == Decimal("500.00")
        assert await _count(store, account.account_id) == 2

        with pytest.raises(AlreadyProcessedError):
            await admin_service.reject_withdrawal(admin, withdrawal.id)
        profile = await account_service.get_profile(admin, account.account_id)
        assert profile.balance == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_approve_keeps_balance(
        self, store, make_account, admin_service, admin, account_service
    ):
        account = await make_account()
        withdrawal = await WithdrawalService(store).request_withdrawal(
            admin, account.account_id, WithdrawalRequest(amount="100", **BANK)
        )

        decision = await admin_service.approve_withdrawal(admin, withdrawal.id)

        assert decision.status == "completed"
        profile = await account_service.get_profile(admin, account.account_id)
        assert profile.balance == Decimal("400.00")
        assert await _count(store, account.account_id) == 1


class TestCheckinStatus:
    """Test IncomeService.checkin_status and checkin_history."""

    @pytest.mark.asyncio
    async def test_status_before_and_after(self, store, clock, make_account):
        account = await make_account()
        principal = AccountPrincipal(account_id=account.account_id)
        income = IncomeService(store)

        status = await income.checkin_status(principal, account.account_id)
        assert status.can_checkin is True
        assert status.last_checkin is None
        assert status.amount_received is None
        # midnight in Luanda is 23:00 UTC
        assert status.next_checkin == datetime(2026, 1, 10, 23, 0, tzinfo=UTC)

        await income.daily_checkin(principal, account.account_id)
        status = await income.checkin_status(principal, account.account_id)
        assert status.can_checkin is False
        assert status.amount_received == Decimal("10.00")
        assert status.last_checkin == clock.current

        clock.advance(days=1)
        status = await income.checkin_status(principal, account.account_id)
        assert status.can_checkin is True
        assert status.amount_received is None
        assert status.last_checkin == datetime(2026, 1, 10, 12, 0, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_history_pages(self, store, clock, make_account):
        account = await make_account()
        principal = AccountPrincipal(account_id=account.account_id)
        income = IncomeService(store)
        for _ in range(3):
            await income.daily_checkin(principal, account.account_id)
            clock.advance(days=1)

        first = await income.checkin_history(principal, account.account_id, limit=2)
        assert first.total == 3
        assert first.pages == 2
        assert len(first.checkins) == 2
        assert first.checkins[0].id > first.checkins[1].id

        second = await income.checkin_history(
            principal, account.account_id, page=2, limit=2
        )
        assert len(second.checkins) == 1

    @pytest.mark.asyncio
    async def test_other_account_refused(self, store, make_account):
        owner = await make_account()
        other = await make_account()

        with pytest.raises(AuthorizationError):
            await IncomeService(store).checkin_status(
                AccountPrincipal(account_id=other.account_id), owner.account_id
            )


SAVED_BANK = {
    "bank_name": "BAI",
    "account_holder": "Maria Silva",
    "account_number": "AO06 0044 0000 6729 5030 1010 2",
    "branch_code": "0044",
}


class TestBankAccount:
    """Test BankAccountService."""

    @pytest.mark.asyncio
    async def test_create_then_duplicate(self, store, make_account):
        account = await make_account()
        principal = AccountPrincipal(account_id=account.account_id)
        service = BankAccountService(store)
        assert await service.has_bank_account(principal, account.account_id) is False

        saved = await service.create_bank_account(
            principal, account.account_id, BankAccountRequest(**SAVED_BANK)
        )

        assert saved.account_number == "AO06004400006729503010102"
        assert await service.has_bank_account(principal, account.account_id) is True
        with pytest.raises(BusinessRuleError):
            await service.create_bank_account(
                principal, account.account_id, BankAccountRequest(**SAVED_BANK)
            )

        logs = await store.run_in_transaction(
            lambda s: SystemLogRepository(s).recent_by_actions(
                [SystemAction.BANK_ACCOUNT_CREATED]
            ),
            label="test",
        )
        assert len(logs) == 1
        assert logs[0].account_id == account.account_id

    @pytest.mark.asyncio
    async def test_update_and_delete(self, store, make_account):
        account = await make_account()
        principal = AccountPrincipal(account_id=account.account_id)
        service = BankAccountService(store)

        with pytest.raises(NotFoundError):
            await service.update_bank_account(
                principal, account.account_id, BankAccountRequest(**SAVED_BANK)
            )
        with pytest.raises(NotFoundError):
            await service.delete_bank_account(principal, account.account_id)

        await service.create_bank_account(
            principal, account.account_id, BankAccountRequest(**SAVED_BANK)
        )
        updated = await service.update_bank_account(
            principal,
            account.account_id,
            BankAccountRequest(**{**SAVED_BANK, "bank_name": "BFA"}),
        )
        assert updated.bank_name == "BFA"
        fetched = await service.get_bank_account(principal, account.account_id)
        assert fetched.bank_name == "BFA"

        await service.delete_bank_account(principal, account.account_id)
        assert await service.get_bank_account(principal, account.account_id) is None

    @pytest.mark.asyncio
    async def test_unknown_account(self, store, admin):
        with pytest.raises(NotFoundError):
            await BankAccountService(store).create_bank_account(
                admin, 404, BankAccountRequest(**SAVED_BANK)
            )

    @pytest.mark.asyncio
    async def test_owner_only(self, store, make_account):
        owner = await make_account()
        other = await make_account()

        with pytest.raises(AuthorizationError):
            await BankAccountService(store).create_bank_account(
                AccountPrincipal(account_id=other.account_id),
                owner.account_id,
                BankAccountRequest(**SAVED_BANK),
            )
