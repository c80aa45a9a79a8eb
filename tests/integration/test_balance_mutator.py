"""
Integration tests for the balance mutator and atomic units.

Every mutation must leave balance == initial_balance + sum(transactions) and
the latest balance_after equal to the stored balance.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from yieldledger.models.enums import SystemAction, TransactionType
from yieldledger.repositories.account_repository import AccountRepository
from yieldledger.repositories.system_log_repository import SystemLogRepository
from yieldledger.repositories.transaction_repository import TransactionRepository
from yieldledger.services.balance_mutator import BalanceMutator
from yieldledger.utils.exceptions import (
    AtomicUnitError,
    BusinessRuleError,
    InsufficientFundsError,
    NotFoundError,
)


async def _balance(store, account_id):
    account = await store.run_in_transaction(
        lambda s: AccountRepository(s).get_by_id(account_id), label="test"
    )
    return account.balance


async def _tx_count(store, account_id):
    return await store.run_in_transaction(
        lambda s: TransactionRepository(s).count_for_account(account_id),
        label="test",
    )


class TestAdjustBalance:
    """Test BalanceMutator.adjust_balance."""

    @pytest.mark.asyncio
    async def test_credit_writes_transaction_and_log(self, store, make_account):
        account = await make_account()

        async def _credit(session):
            return await BalanceMutator(session, store.clock).adjust_balance(
                account.account_id,
                Decimal("25.50"),
                TransactionType.DEPOSIT,
                "Manual deposit",
                log_action=SystemAction.DEPOSIT_APPROVED,
            )

        change = await store.run_in_transaction(_credit, label="test_credit")

        assert change.new_balance == Decimal("525.50")
        assert change.delta == Decimal("25.50")

        last = await store.run_in_transaction(
            lambda s: TransactionRepository(s).last_for_account(account.account_id),
            label="test",
        )
        assert last.id == change.transaction_id
        assert last.type == "deposit"
        assert last.amount == Decimal("25.50")
        assert last.balance_after == Decimal("525.50")

        logs = await store.run_in_transaction(
            lambda s: SystemLogRepository(s).recent_by_actions(
                [SystemAction.DEPOSIT_APPROVED]
            ),
            label="test",
        )
        assert len(logs) == 1
        assert logs[0].account_id == account.account_id

    @pytest.mark.asyncio
    async def test_ledger_reconciles_after_mixed_deltas(self, store, make_account):
        account = await make_account()
        deltas = [Decimal("100"), Decimal("-40.25"), Decimal("13"), Decimal("-500")]

        for delta in deltas:
            async def _apply(session, delta=delta):
                return await BalanceMutator(session, store.clock).adjust_balance(
                    account.account_id, delta, TransactionType.ADMIN_ADDITION, "test"
                )

            await store.run_in_transaction(_apply, label="test_apply")

        async def _totals(session):
            repo = TransactionRepository(session)
            acc = await AccountRepository(session).get_by_id(account.account_id)
            last = await repo.last_for_account(account.account_id)
            return acc, await repo.sum_for_account(account.account_id), last

        acc, total, last = await store.run_in_transaction(_totals, label="test")

        assert acc.balance == Decimal("72.75")
        assert acc.initial_balance + total == acc.balance
        assert last.balance_after == acc.balance

    @pytest.mark.asyncio
    async def test_unknown_account(self, store):
        async def _credit(session):
            return await BalanceMutator(session, store.clock).adjust_balance(
                999, Decimal("1"), TransactionType.DEPOSIT, "test"
            )

        with pytest.raises(NotFoundError):
            await store.run_in_transaction(_credit, label="test_unknown")

    @pytest.mark.asyncio
    async def test_ensure_sufficient_funds(self, store, make_account):
        account = await make_account()

        async def _check(session):
            mutator = BalanceMutator(session, store.clock)
            locked = await mutator.lock_account(account.account_id)
            mutator.ensure_sufficient_funds(locked, Decimal("500"))
            mutator.ensure_sufficient_funds(locked, Decimal("500.01"))

        with pytest.raises(InsufficientFundsError) as exc_info:
            await store.run_in_transaction(_check, label="test_funds")

        assert exc_info.value.balance == Decimal("500.00")
        assert exc_info.value.requested == Decimal("500.01")


class TestAtomicUnit:
    """Test LedgerStore.run_in_transaction rollback semantics."""

    @pytest.mark.asyncio
    async def test_business_error_rolls_back_whole_unit(self, store, make_account):
        account = await make_account()

        async def _credit_then_reject(session):
            await BalanceMutator(session, store.clock).adjust_balance(
                account.account_id, Decimal("100"), TransactionType.DEPOSIT, "test"
            )
            raise BusinessRuleError("rejected after credit")

        with pytest.raises(BusinessRuleError):
            await store.run_in_transaction(_credit_then_reject, label="test")

        assert await _balance(store, account.account_id) == Decimal("500.00")
        assert await _tx_count(store, account.account_id) == 0

    @pytest.mark.asyncio
    async def test_driver_error_becomes_atomic_unit_error(self, store, make_account):
        account = await make_account()

        async def _credit_then_fail(session):
            await BalanceMutator(session, store.clock).adjust_balance(
                account.account_id, Decimal("100"), TransactionType.DEPOSIT, "test"
            )
            raise OperationalError("UPDATE accounts", {}, Exception("disk I/O error"))

        with pytest.raises(AtomicUnitError):
            await store.run_in_transaction(_credit_then_fail, label="test")

        assert await _balance(store, account.account_id) == Decimal("500.00")
        assert await _tx_count(store, account.account_id) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            OperationalError("INSERT INTO system_logs", {}, Exception("locked")),
            RuntimeError("driver bug"),
        ],
        ids=["store", "unexpected"],
    )
    async def test_audit_is_best_effort(self, store, monkeypatch, error):
        async def _broken_append(self, *args, **kwargs):
            raise error

        monkeypatch.setattr(SystemLogRepository, "append", _broken_append)

        assert await store.audit(SystemAction.AUTO_PAYOUTS_COMPLETED, "test") is False
