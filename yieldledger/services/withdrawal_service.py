"""
Withdrawal service.

The gross amount is debited when the request is made. Approval only marks
the request completed; rejection refunds it (see AdminService).
"""

from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.enums import RequestStatus, SystemAction, TransactionType
from yieldledger.models.withdrawal import Withdrawal
from yieldledger.repositories.request_repository import WithdrawalRepository
from yieldledger.services.balance_mutator import BalanceMutator
from yieldledger.services.base_service import BaseService
from yieldledger.utils.money import format_kz, to_money
from yieldledger.utils.security import Principal, require_account
from yieldledger.validators.requests import WithdrawalRequest


class WithdrawalService(BaseService):
    """Withdrawal requests."""

    async def request_withdrawal(
        self,
        principal: Principal,
        account_id: int,
        request: WithdrawalRequest,
    ) -> Withdrawal:
        """
        Debit the balance and create a pending withdrawal.

        Raises:
            InsufficientFundsError: Balance lower than amount (no mutation)
            NotFoundError: Unknown account
        """
        require_account(principal, account_id)
        amount = to_money(request.amount)

        async def _create(session: AsyncSession) -> Withdrawal:
            mutator = BalanceMutator(session, self.store.clock)
            account = await mutator.lock_account(account_id)
            mutator.ensure_sufficient_funds(account, amount)

            await mutator.adjust_balance(
                account_id,
                -amount,
                TransactionType.WITHDRAWAL,
                f"Bank withdrawal - {request.bank_name}",
                log_action=SystemAction.WITHDRAWAL_REQUEST,
                log_description=(
                    f"Account {account_id} requested withdrawal of "
                    f"{format_kz(amount)} (net {format_kz(request.net_amount)})"
                ),
            )

            return await WithdrawalRepository(session).create(
                account_id=account_id,
                amount=amount,
                tax=to_money(request.tax),
                net_amount=to_money(request.net_amount),
                account_name=request.account_name,
                iban=request.iban,
                bank_name=request.bank_name,
                bank_code=request.bank_code,
                status=RequestStatus.PENDING.value,
                created_at=self.now(),
            )

        withdrawal = await self.store.run_in_transaction(
            _create, label=f"withdrawal_request:{account_id}"
        )
        self.logger.info(
            "Withdrawal requested",
            extra={
                "account_id": account_id,
                "withdrawal_id": withdrawal.id,
                "amount": str(withdrawal.amount),
            },
        )
        return withdrawal

    async def list_withdrawals(
        self, principal: Principal, account_id: int, limit: int = 50
    ) -> list[Withdrawal]:
        """Withdrawals of an account, newest first."""
        require_account(principal, account_id)

        async def _load(session: AsyncSession) -> list[Withdrawal]:
            return await WithdrawalRepository(session).find_all(
                limit=limit, account_id=account_id
            )

        return await self.store.run_in_transaction(
            _load, label=f"withdrawals:{account_id}"
        )
