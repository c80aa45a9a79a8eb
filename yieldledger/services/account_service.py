"""
Account service.

Registration with up-line materialization, profile and ledger history.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.config.business_constants import (
    REFERRAL_CODE_ALPHABET,
    REFERRAL_CODE_LENGTH,
    REFERRAL_CODE_MAX_ATTEMPTS,
)
from yieldledger.models.account import Account
from yieldledger.models.enums import SystemAction
from yieldledger.models.transaction import Transaction
from yieldledger.repositories.account_repository import AccountRepository
from yieldledger.repositories.system_log_repository import SystemLogRepository
from yieldledger.repositories.transaction_repository import TransactionRepository
from yieldledger.services.base_service import BaseService
from yieldledger.services.referral.chain_manager import ReferralChainManager
from yieldledger.utils.datetime_utils import ensure_utc
from yieldledger.utils.exceptions import (
    AtomicUnitError,
    BusinessRuleError,
    NotFoundError,
    ValidationError,
)
from yieldledger.utils.money import format_kz, to_money
from yieldledger.utils.security import Principal, require_account
from yieldledger.validators.requests import RegistrationRequest


def generate_referral_code() -> str:
    """Random 6-character code from A-Z0-9."""
    return "".join(
        secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH)
    )


@dataclass
class RegistrationResult:
    account_id: int
    mobile: str
    referral_code: str
    balance: Decimal
    inviter_id: int | None
    referral_levels: int


@dataclass
class AccountProfile:
    account_id: int
    mobile: str
    referral_code: str
    balance: Decimal
    inviter_id: int | None
    created_at: datetime


class AccountService(BaseService):
    """Account registration and lookups."""

    async def register(self, request: RegistrationRequest) -> RegistrationResult:
        """
        Register an account.

        The signup balance is stored as ``initial_balance`` and has no
        Transaction row; reconciliation starts from it.

        Raises:
            BusinessRuleError: Mobile already registered
            ValidationError: Unknown invitation code
        """

        async def _register(session: AsyncSession) -> RegistrationResult:
            accounts = AccountRepository(session)

            if await accounts.get_by_mobile(request.mobile):
                raise BusinessRuleError("Mobile number already registered")

            inviter_id = None
            if request.invitation_code:
                inviter = await accounts.get_by_referral_code(request.invitation_code)
                if inviter is None:
                    raise ValidationError("Invalid invitation code")
                inviter_id = inviter.id

            code = await self._unique_code(accounts)
            signup_balance = to_money(self.settings.signup_balance)
            now = self.now()

            account = await accounts.create(
                mobile=request.mobile,
                referral_code=code,
                inviter_id=inviter_id,
                balance=signup_balance,
                initial_balance=signup_balance,
                created_at=now,
                updated_at=now,
            )

            levels = 0
            if inviter_id is not None:
                levels = await ReferralChainManager(session).materialize(
                    account.id, inviter_id
                )

            await SystemLogRepository(session).append(
                SystemAction.ACCOUNT_REGISTERED,
                (
                    f"Account {account.mobile} registered with "
                    f"{format_kz(signup_balance)}"
                    + (f", invited by account {inviter_id}" if inviter_id else "")
                ),
                account.id,
                created_at=now,
            )

            return RegistrationResult(
                account_id=account.id,
                mobile=account.mobile,
                referral_code=account.referral_code,
                balance=signup_balance,
                inviter_id=inviter_id,
                referral_levels=levels,
            )

        result = await self.store.run_in_transaction(
            _register, label=f"register:{request.mobile}"
        )
        self.logger.info(
            "Account registered",
            extra={
                "account_id": result.account_id,
                "inviter_id": result.inviter_id,
                "referral_levels": result.referral_levels,
            },
        )
        return result

    async def _unique_code(self, accounts: AccountRepository) -> str:
        for _ in range(REFERRAL_CODE_MAX_ATTEMPTS):
            code = generate_referral_code()
            if not await accounts.referral_code_exists(code):
                return code
        raise AtomicUnitError("Could not generate a unique referral code")

    async def verify_invitation_code(self, code: str) -> int:
        """
        Resolve an invitation code to the inviter's account id.

        Raises:
            NotFoundError: Unknown code
        """

        async def _lookup(session: AsyncSession) -> Account | None:
            return await AccountRepository(session).get_by_referral_code(code)

        inviter = await self.store.run_in_transaction(
            _lookup, label="verify_invitation_code"
        )
        if inviter is None:
            raise NotFoundError("Invitation code", code)
        return inviter.id

    async def get_profile(
        self, principal: Principal, account_id: int
    ) -> AccountProfile:
        """Balance and identity of an account."""
        require_account(principal, account_id)

        async def _load(session: AsyncSession) -> Account | None:
            return await AccountRepository(session).get_by_id(account_id)

        account = await self.store.run_in_transaction(
            _load, label=f"profile:{account_id}"
        )
        if account is None:
            raise NotFoundError("Account", account_id)
        return AccountProfile(
            account_id=account.id,
            mobile=account.mobile,
            referral_code=account.referral_code,
            balance=to_money(account.balance),
            inviter_id=account.inviter_id,
            created_at=ensure_utc(account.created_at),
        )

    async def list_transactions(
        self,
        principal: Principal,
        account_id: int,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Transaction]:
        """Ledger entries of an account, newest first."""
        require_account(principal, account_id)
        limit = max(1, min(limit, 500))

        async def _load(session: AsyncSession) -> list[Transaction]:
            return await TransactionRepository(session).list_for_account(
                account_id, limit=limit, offset=max(offset, 0)
            )

        return await self.store.run_in_transaction(
            _load, label=f"transactions:{account_id}"
        )
