"""
Integration tests for account registration and up-line materialization.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import InvalidRequestError

from yieldledger.models.referral_level import ReferralLevel
from yieldledger.repositories.account_repository import AccountRepository
from yieldledger.repositories.referral_repository import ReferralLevelRepository
from yieldledger.services.referral.chain_manager import ReferralChainManager
from yieldledger.utils.exceptions import (
    AuthorizationError,
    BusinessRuleError,
    NotFoundError,
    ValidationError,
)
from yieldledger.utils.security import AccountPrincipal
from yieldledger.validators.requests import RegistrationRequest


async def _levels(store, account_id):
    return await store.run_in_transaction(
        lambda s: ReferralLevelRepository(s).get_upline(account_id, 3),
        label="test",
    )


class TestRegister:
    """Test AccountService.register."""

    @pytest.mark.asyncio
    async def test_signup_balance_without_transaction(
        self, account_service, admin
    ):
        result = await account_service.register(
            RegistrationRequest(mobile="923 111 222")
        )

        assert result.balance == Decimal("500.00")
        assert result.inviter_id is None
        assert result.referral_levels == 0
        assert len(result.referral_code) == 6
        assert result.referral_code.isalnum()
        assert result.referral_code == result.referral_code.upper()

        profile = await account_service.get_profile(admin, result.account_id)
        assert profile.mobile == "923111222"
        assert profile.balance == Decimal("500.00")

        history = await account_service.list_transactions(admin, result.account_id)
        assert history == []

    @pytest.mark.asyncio
    async def test_duplicate_mobile(self, account_service):
        await account_service.register(RegistrationRequest(mobile="923111222"))

        with pytest.raises(BusinessRuleError):
            await account_service.register(RegistrationRequest(mobile="923111222"))

    @pytest.mark.asyncio
    async def test_unknown_invitation_code(self, account_service):
        with pytest.raises(ValidationError):
            await account_service.register(
                RegistrationRequest(mobile="923111222", invitation_code="ZZZZZZ")
            )

    @pytest.mark.asyncio
    async def test_invitation_code_case_insensitive(self, account_service, make_account):
        inviter = await make_account()

        result = await account_service.register(
            RegistrationRequest(
                mobile="923999000", invitation_code=inviter.referral_code.lower()
            )
        )

        assert result.inviter_id == inviter.account_id
        assert result.referral_levels == 1
        assert await account_service.verify_invitation_code(
            inviter.referral_code
        ) == inviter.account_id

    @pytest.mark.asyncio
    async def test_verify_unknown_code(self, account_service):
        with pytest.raises(NotFoundError):
            await account_service.verify_invitation_code("NOPE00")

    @pytest.mark.asyncio
    async def test_upline_capped_at_three_levels(self, store, make_account):
        chain = [await make_account()]
        for _ in range(4):
            chain.append(await make_account(inviter=chain[-1]))

        newest = chain[-1]
        edges = await _levels(store, newest.account_id)

        assert [(e.level, e.referrer_id) for e in edges] == [
            (1, chain[3].account_id),
            (2, chain[2].account_id),
            (3, chain[1].account_id),
        ]
        assert newest.referral_levels == 3

    @pytest.mark.asyncio
    async def test_profile_requires_owner(self, account_service, make_account):
        first = await make_account()
        second = await make_account()

        profile = await account_service.get_profile(
            AccountPrincipal(account_id=first.account_id), first.account_id
        )
        assert profile.account_id == first.account_id

        with pytest.raises(AuthorizationError):
            await account_service.get_profile(
                AccountPrincipal(account_id=second.account_id), first.account_id
            )

    @pytest.mark.asyncio
    async def test_collections_never_lazy_load(self, store, make_account):
        account = await make_account()

        async def _touch(session):
            loaded = await AccountRepository(session).get_by_id(account.account_id)
            with pytest.raises(InvalidRequestError):
                loaded.purchases
            with pytest.raises(InvalidRequestError):
                loaded.transactions

        await store.run_in_transaction(_touch, label="test")


class TestReferralChainManager:
    """Test chain materialization edge cases."""

    @pytest.mark.asyncio
    async def test_self_invite_rejected(self, store, make_account):
        account = await make_account()

        async def _materialize(session):
            return await ReferralChainManager(session).materialize(
                account.account_id, account.account_id
            )

        with pytest.raises(BusinessRuleError):
            await store.run_in_transaction(_materialize, label="test")

    @pytest.mark.asyncio
    async def test_loop_rejected(self, store, make_account):
        a = await make_account()
        b = await make_account(inviter=a)

        async def _close_loop(session):
            account = await AccountRepository(session).get_by_id(a.account_id)
            account.inviter_id = b.account_id
            await session.flush()

        await store.run_in_transaction(_close_loop, label="test")

        async def _materialize(session):
            return await ReferralChainManager(session).materialize(
                a.account_id, b.account_id
            )

        with pytest.raises(BusinessRuleError):
            await store.run_in_transaction(_materialize, label="test")

    @pytest.mark.asyncio
    async def test_unknown_inviter(self, store, make_account):
        account = await make_account()

        async def _materialize(session):
            return await ReferralChainManager(session).materialize(
                account.account_id, 404
            )

        with pytest.raises(NotFoundError):
            await store.run_in_transaction(_materialize, label="test")

    @pytest.mark.asyncio
    async def test_levels_not_duplicated(self, store, make_account):
        a = await make_account()
        b = await make_account(inviter=a)

        count = await store.run_in_transaction(
            lambda s: ReferralLevelRepository(s).count(account_id=b.account_id),
            label="test",
        )
        assert count == 1

        edge = (await _levels(store, b.account_id))[0]
        assert isinstance(edge, ReferralLevel)
        assert edge.referrer_id == a.account_id
