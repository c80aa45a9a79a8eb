"""
Bank account service.

One saved payout bank account per account: create, read, replace and delete,
each audited in SystemLog.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.bank_account import BankAccount
from yieldledger.models.enums import SystemAction
from yieldledger.repositories.account_repository import AccountRepository
from yieldledger.repositories.bank_account_repository import BankAccountRepository
from yieldledger.repositories.system_log_repository import SystemLogRepository
from yieldledger.services.base_service import BaseService
from yieldledger.utils.exceptions import BusinessRuleError, NotFoundError
from yieldledger.utils.security import Principal, require_account
from yieldledger.validators.requests import BankAccountRequest


class BankAccountService(BaseService):
    """Saved bank accounts."""

    async def get_bank_account(
        self, principal: Principal, account_id: int
    ) -> BankAccount | None:
        require_account(principal, account_id)

        async def _load(session: AsyncSession) -> BankAccount | None:
            return await BankAccountRepository(session).get_for_account(account_id)

        return await self.store.run_in_transaction(
            _load, label=f"bank_account:{account_id}"
        )

    async def has_bank_account(self, principal: Principal, account_id: int) -> bool:
        """Whether a withdrawal destination is on file."""
        return await self.get_bank_account(principal, account_id) is not None

    async def create_bank_account(
        self,
        principal: Principal,
        account_id: int,
        request: BankAccountRequest,
    ) -> BankAccount:
        """
        Save the bank account of an account.

        Raises:
            NotFoundError: Unknown account
            BusinessRuleError: A bank account is already saved
        """
        require_account(principal, account_id)

        async def _create(session: AsyncSession) -> BankAccount:
            accounts = AccountRepository(session)
            if await accounts.lock_by_id(account_id) is None:
                raise NotFoundError("Account", account_id)

            repo = BankAccountRepository(session)
            if await repo.get_for_account(account_id):
                raise BusinessRuleError(
                    "A bank account is already saved; update it instead"
                )

            now = self.now()
            bank_account = await repo.create(
                account_id=account_id,
                created_at=now,
                updated_at=now,
                **request.model_dump(),
            )
            await SystemLogRepository(session).append(
                SystemAction.BANK_ACCOUNT_CREATED,
                f"Account {account_id} saved bank account: "
                f"{request.bank_name} - {request.account_number}",
                account_id,
                created_at=now,
            )
            return bank_account

        bank_account = await self.store.run_in_transaction(
            _create, label=f"bank_account_create:{account_id}"
        )
        self.logger.info(
            "Bank account saved",
            extra={"account_id": account_id, "bank_name": bank_account.bank_name},
        )
        return bank_account

    async def update_bank_account(
        self,
        principal: Principal,
        account_id: int,
        request: BankAccountRequest,
    ) -> BankAccount:
        """
        Replace every field of the saved bank account.

        Raises:
            NotFoundError: No bank account saved
        """
        require_account(principal, account_id)

        async def _update(session: AsyncSession) -> BankAccount:
            bank_account = await BankAccountRepository(session).get_for_account(
                account_id, for_update=True
            )
            if bank_account is None:
                raise NotFoundError("Bank account", account_id)

            for name, value in request.model_dump().items():
                setattr(bank_account, name, value)
            bank_account.updated_at = self.now()
            await session.flush()

            await SystemLogRepository(session).append(
                SystemAction.BANK_ACCOUNT_UPDATED,
                f"Account {account_id} updated bank account: "
                f"{request.bank_name} - {request.account_number}",
                account_id,
                created_at=self.now(),
            )
            return bank_account

        return await self.store.run_in_transaction(
            _update, label=f"bank_account_update:{account_id}"
        )

    async def delete_bank_account(self, principal: Principal, account_id: int) -> None:
        """
        Remove the saved bank account.

        Raises:
            NotFoundError: No bank account saved
        """
        require_account(principal, account_id)

        async def _delete(session: AsyncSession) -> None:
            repo = BankAccountRepository(session)
            bank_account = await repo.get_for_account(account_id, for_update=True)
            if bank_account is None:
                raise NotFoundError("Bank account", account_id)

            await session.delete(bank_account)
            await SystemLogRepository(session).append(
                SystemAction.BANK_ACCOUNT_DELETED,
                f"Account {account_id} deleted its bank account",
                account_id,
                created_at=self.now(),
            )

        await self.store.run_in_transaction(
            _delete, label=f"bank_account_delete:{account_id}"
        )
