"""
Deposit service.

Creates pending bank deposit requests. Balance is credited only when an
administrator approves the request (see AdminService).
"""

from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.deposit import Deposit
from yieldledger.models.enums import RequestStatus, SystemAction
from yieldledger.repositories.account_repository import AccountRepository
from yieldledger.repositories.request_repository import DepositRepository
from yieldledger.repositories.system_log_repository import SystemLogRepository
from yieldledger.services.base_service import BaseService
from yieldledger.utils.exceptions import NotFoundError, ValidationError
from yieldledger.utils.money import format_kz, to_money
from yieldledger.utils.security import Principal, require_account
from yieldledger.validators.requests import DepositRequest


class DepositService(BaseService):
    """Deposit requests."""

    async def request_deposit(
        self,
        principal: Principal,
        account_id: int,
        request: DepositRequest,
    ) -> Deposit:
        """
        Create a pending deposit.

        Raises:
            ValidationError: Amount below the configured minimum
            NotFoundError: Unknown account
        """
        require_account(principal, account_id)
        minimum = to_money(self.settings.minimum_deposit_amount)
        if request.amount < minimum:
            raise ValidationError(f"Minimum deposit is {format_kz(minimum)}")

        async def _create(session: AsyncSession) -> Deposit:
            if await AccountRepository(session).get_by_id(account_id) is None:
                raise NotFoundError("Account", account_id)

            now = self.now()
            deposit = await DepositRepository(session).create(
                account_id=account_id,
                amount=to_money(request.amount),
                account_name=request.account_name,
                iban=request.iban,
                bank_name=request.bank_name,
                bank_code=request.bank_code,
                status=RequestStatus.PENDING.value,
                created_at=now,
            )
            await SystemLogRepository(session).append(
                SystemAction.DEPOSIT_REQUEST,
                (
                    f"Account {account_id} requested deposit of "
                    f"{format_kz(request.amount)} via {request.bank_name}"
                ),
                account_id,
                created_at=now,
            )
            return deposit

        deposit = await self.store.run_in_transaction(
            _create, label=f"deposit_request:{account_id}"
        )
        self.logger.info(
            "Deposit requested",
            extra={
                "account_id": account_id,
                "deposit_id": deposit.id,
                "amount": str(deposit.amount),
            },
        )
        return deposit

    async def list_deposits(
        self, principal: Principal, account_id: int, limit: int = 50
    ) -> list[Deposit]:
        """Deposits of an account, newest first."""
        require_account(principal, account_id)

        async def _load(session: AsyncSession) -> list[Deposit]:
            return await DepositRepository(session).find_all(
                limit=limit, account_id=account_id
            )

        return await self.store.run_in_transaction(
            _load, label=f"deposits:{account_id}"
        )
