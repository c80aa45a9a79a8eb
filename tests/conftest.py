"""Pytest configuration and shared fixtures for all tests."""

import os
from datetime import UTC, datetime, timedelta
from decimal import Decimal

# Minimal environment so load_settings() works anywhere in the test run
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token-0123456789abcdef0123")
os.environ.setdefault("SYSTEM_API_TOKEN", "test-system-token-0123456789abcdef012")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from yieldledger.config.database import Database
from yieldledger.config.settings import Settings
from yieldledger.models import Base
from yieldledger.services.account_service import AccountService
from yieldledger.services.admin.service import AdminService
from yieldledger.services.ledger_store import LedgerStore
from yieldledger.utils.security import AdminPrincipal, SystemPrincipal
from yieldledger.validators.requests import AmountRequest, RegistrationRequest


START = datetime(2026, 1, 10, 12, 0, tzinfo=UTC)


class FakeClock:
    """Controllable time source shared by the store and every service."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def settings():
    """Settings for an in-memory SQLite database."""
    return Settings(
        database_url="sqlite+aiosqlite://",
        environment="test",
        admin_api_token="test-admin-token-0123456789abcdef0123",
        system_api_token="test-system-token-0123456789abcdef012",
        payout_timezone="Africa/Luanda",
        transaction_timeout_seconds=10,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def database(settings):
    """Fresh in-memory schema per test."""
    engine = create_async_engine(
        settings.database_url,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    db = Database(settings, engine=engine)
    yield db
    await db.dispose()


@pytest.fixture
def store(database, settings, clock):
    return LedgerStore(database, settings, clock=clock)


@pytest.fixture
def admin():
    return AdminPrincipal()


@pytest.fixture
def system():
    return SystemPrincipal()


@pytest.fixture
def account_service(store):
    return AccountService(store)


@pytest.fixture
def admin_service(store):
    return AdminService(store)


@pytest.fixture
def make_account(account_service, admin_service, admin):
    """
    Register an account and optionally move it to a given balance.

    Returns:
        Async factory (mobile, inviter=None, balance=None) -> RegistrationResult
    """
    counter = {"n": 0}

    async def _make(inviter=None, balance: Decimal | str | None = None, mobile=None):
        counter["n"] += 1
        registration = await account_service.register(
            RegistrationRequest(
                mobile=mobile or f"9230000{counter['n']:02d}",
                invitation_code=inviter.referral_code if inviter else None,
            )
        )
        if balance is not None:
            target = Decimal(str(balance))
            delta = target - registration.balance
            if delta > 0:
                await admin_service.add_balance(
                    admin, registration.account_id, AmountRequest(amount=delta)
                )
            elif delta < 0:
                await admin_service.deduct_balance(
                    admin, registration.account_id, AmountRequest(amount=-delta)
                )
        return registration

    return _make
