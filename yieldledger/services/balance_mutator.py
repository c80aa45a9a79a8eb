"""
Balance mutator.

The only code path that changes ``Account.balance``. Each call applies a
relative delta, appends exactly one Transaction whose ``balance_after`` is the
post-update balance, and appends a SystemLog entry, all inside the caller's
atomic unit.
"""

from dataclasses import dataclass
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.account import Account
from yieldledger.models.enums import SystemAction, TransactionType
from yieldledger.models.transaction import Transaction
from yieldledger.repositories.account_repository import AccountRepository
from yieldledger.repositories.system_log_repository import SystemLogRepository
from yieldledger.utils.datetime_utils import Clock, utc_now
from yieldledger.utils.exceptions import InsufficientFundsError, NotFoundError
from yieldledger.utils.money import to_money


@dataclass
class BalanceChange:
    """Result of one balance adjustment."""

    account_id: int
    delta: Decimal
    new_balance: Decimal
    transaction_id: int


class BalanceMutator:
    """
    Balance mutation primitive.

    Debits are not checked here: callers lock the account with
    ``lock_account`` and call ``ensure_sufficient_funds`` first.
    """

    def __init__(self, session: AsyncSession, clock: Clock = utc_now) -> None:
        """
        Initialize mutator.

        Args:
            session: Session of the enclosing atomic unit
            clock: Time source for ledger timestamps
        """
        self.session = session
        self.clock = clock
        self.accounts = AccountRepository(session)
        self.system_logs = SystemLogRepository(session)

    async def lock_account(self, account_id: int) -> Account:
        """
        Load an account with a row lock held until the unit ends.

        Raises:
            NotFoundError: Account does not exist
        """
        account = await self.accounts.lock_by_id(account_id)
        if account is None:
            raise NotFoundError("Account", account_id)
        return account

    @staticmethod
    def ensure_sufficient_funds(account: Account, amount: Decimal) -> None:
        """
        Reject a debit of ``amount`` that would make the balance negative.

        Raises:
            InsufficientFundsError: Balance lower than amount
        """
        balance = to_money(account.balance)
        if balance < to_money(amount):
            raise InsufficientFundsError(account.id, balance, to_money(amount))

    async def adjust_balance(
        self,
        account_id: int,
        delta: Decimal,
        transaction_type: TransactionType | str,
        description: str,
        *,
        log_action: SystemAction | str | None = None,
        log_description: str | None = None,
    ) -> BalanceChange:
        """
        Apply ``delta`` to the account balance with its ledger entries.

        Args:
            account_id: Account to adjust
            delta: Signed amount (negative for debits)
            transaction_type: Transaction type tag
            description: Transaction description
            log_action: SystemLog action (defaults to BALANCE_ADJUSTED)
            log_description: SystemLog text (defaults to ``description``)

        Returns:
            BalanceChange with the post-mutation balance

        Raises:
            NotFoundError: Account does not exist
        """
        delta = to_money(delta)
        now = self.clock()

        new_balance = await self.accounts.apply_balance_delta(account_id, delta)
        if new_balance is None:
            raise NotFoundError("Account", account_id)

        entry = Transaction(
            account_id=account_id,
            type=str(transaction_type),
            amount=delta,
            balance_after=new_balance,
            description=description,
            created_at=now,
        )
        self.session.add(entry)
        await self.session.flush()

        await self.system_logs.append(
            log_action or SystemAction.BALANCE_ADJUSTED,
            log_description or description,
            account_id,
            created_at=now,
        )

        logger.info(
            f"Balance adjusted: account {account_id} {delta:+} -> {new_balance}",
            extra={
                "account_id": account_id,
                "amount": str(delta),
                "balance_after": str(new_balance),
                "transaction_type": str(transaction_type),
                "transaction_id": entry.id,
            },
        )

        return BalanceChange(
            account_id=account_id,
            delta=delta,
            new_balance=new_balance,
            transaction_id=entry.id,
        )
