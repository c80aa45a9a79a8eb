"""
Principals and access guards.

The auth collaborator attaches a verified principal to each call; the core
only checks that the principal kind fits the operation. Admin and system
principals are resolved from static shared secrets.
"""

import hmac
from dataclasses import dataclass

from loguru import logger

from yieldledger.config.settings import Settings
from yieldledger.utils.exceptions import AuthorizationError


@dataclass(frozen=True)
class AccountPrincipal:
    """An authenticated end user."""

    account_id: int


@dataclass(frozen=True)
class SystemPrincipal:
    """Internal caller (the payout scheduler)."""

    name: str = "scheduler"


@dataclass(frozen=True)
class AdminPrincipal:
    """Administrator authenticated with the static admin secret."""

    name: str = "admin"


Principal = AccountPrincipal | SystemPrincipal | AdminPrincipal


class PrincipalResolver:
    """Resolve static-secret principals."""

    def __init__(self, settings: Settings) -> None:
        self._admin_token = settings.admin_api_token.get_secret_value()
        self._system_token = settings.system_api_token.get_secret_value()

    @staticmethod
    def _matches(candidate: str | None, expected: str) -> bool:
        if not candidate or not expected:
            return False
        return hmac.compare_digest(
            candidate.encode("utf-8"), expected.encode("utf-8")
        )

    def resolve_admin(self, token: str | None) -> AdminPrincipal:
        """
        Resolve the admin principal.

        Raises:
            AuthorizationError: Token missing or wrong
        """
        if not self._matches(token, self._admin_token):
            logger.warning("Rejected admin token")
            raise AuthorizationError("Invalid admin credentials")
        return AdminPrincipal()

    def resolve_system(self, token: str | None) -> SystemPrincipal:
        """
        Resolve the system principal used by the scheduler.

        Raises:
            AuthorizationError: Token missing or wrong
        """
        if not self._matches(token, self._system_token):
            logger.warning("Rejected system token")
            raise AuthorizationError("Invalid system credentials")
        return SystemPrincipal()


def require_admin(principal: Principal) -> AdminPrincipal:
    """Allow administrators only."""
    if not isinstance(principal, AdminPrincipal):
        raise AuthorizationError("Administrator access required")
    return principal


def require_system(principal: Principal) -> Principal:
    """Allow the scheduler, or an administrator triggering a manual run."""
    if not isinstance(principal, SystemPrincipal | AdminPrincipal):
        raise AuthorizationError("System access required")
    return principal


def require_account(principal: Principal, account_id: int) -> Principal:
    """Allow the account owner or an administrator."""
    if isinstance(principal, AdminPrincipal):
        return principal
    if isinstance(principal, AccountPrincipal) and principal.account_id == account_id:
        return principal
    raise AuthorizationError("Access to this account is not allowed")
