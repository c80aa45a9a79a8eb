"""
Referral chain management module.

Materializes the up-line of a newly registered account as ReferralLevel rows.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.config.business_constants import REFERRAL_DEPTH
from yieldledger.models.account import Account
from yieldledger.repositories.account_repository import AccountRepository
from yieldledger.repositories.referral_repository import ReferralLevelRepository
from yieldledger.utils.exceptions import BusinessRuleError, NotFoundError


class ReferralChainManager:
    """Manages referral chain operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize chain manager."""
        self.session = session
        self.account_repo = AccountRepository(session)
        self.level_repo = ReferralLevelRepository(session)

    async def get_inviter_chain(
        self, inviter_id: int, depth: int = REFERRAL_DEPTH
    ) -> list[Account]:
        """
        Follow ``inviter_id`` pointers upward starting at ``inviter_id``.

        Args:
            inviter_id: Direct inviter (level 1)
            depth: Maximum chain length

        Returns:
            Accounts from level 1 to level ``depth``

        Raises:
            NotFoundError: Direct inviter does not exist
            BusinessRuleError: Inviter pointers form a loop
        """
        direct = await self.account_repo.get_by_id(inviter_id)
        if direct is None:
            raise NotFoundError("Account", inviter_id)

        chain = [direct]
        seen = {direct.id}
        current = direct
        while len(chain) < depth and current.inviter_id is not None:
            if current.inviter_id in seen:
                logger.warning(
                    "Referral loop detected",
                    extra={"inviter_id": inviter_id, "chain_ids": list(seen)},
                )
                raise BusinessRuleError("Referral chain contains a loop")
            parent = await self.account_repo.get_by_id(current.inviter_id)
            if parent is None:
                break
            chain.append(parent)
            seen.add(parent.id)
            current = parent
        return chain

    async def materialize(self, account_id: int, inviter_id: int) -> int:
        """
        Create ReferralLevel rows for a new account.

        Runs inside the registration unit; the up-line is frozen from here on.

        Args:
            account_id: Newly registered account
            inviter_id: Its direct inviter

        Returns:
            Number of levels created (0-3)

        Raises:
            BusinessRuleError: Self-invite or loop
        """
        if account_id == inviter_id:
            raise BusinessRuleError("An account cannot invite itself")

        chain = await self.get_inviter_chain(inviter_id, REFERRAL_DEPTH)
        if account_id in {referrer.id for referrer in chain}:
            raise BusinessRuleError("Referral chain contains a loop")

        for level, referrer in enumerate(chain[:REFERRAL_DEPTH], start=1):
            await self.level_repo.create(
                referrer_id=referrer.id,
                account_id=account_id,
                level=level,
            )
            logger.debug(
                "Referral level created",
                extra={
                    "referrer_id": referrer.id,
                    "account_id": account_id,
                    "level": level,
                },
            )

        logger.info(
            "Referral chain created",
            extra={
                "account_id": account_id,
                "inviter_id": inviter_id,
                "levels_created": len(chain),
            },
        )
        return len(chain)
