"""
Ledger store.

Atomic unit runner over the async session maker. Every balance-affecting
operation in the package runs inside ``run_in_transaction``.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.config.database import Database
from yieldledger.config.settings import Settings
from yieldledger.repositories.system_log_repository import SystemLogRepository
from yieldledger.utils.datetime_utils import Clock, utc_now
from yieldledger.utils.exceptions import AtomicUnitError, LedgerError


T = TypeVar("T")

UnitOfWork = Callable[[AsyncSession], Awaitable[T]]


class LedgerStore:
    """
    Transactional persistence handle.

    Built once per process from an explicit ``Database`` and ``Settings``
    and passed to every service.

    Atomic unit contract:
        - one session, one transaction per call
        - commit only when ``work`` returns
        - any exception rolls the whole unit back
        - lock wait and overall duration are bounded
    """

    def __init__(
        self,
        database: Database,
        settings: Settings,
        clock: Clock = utc_now,
    ) -> None:
        """
        Initialize ledger store.

        Args:
            database: Engine and session maker owner
            settings: Application settings (unit bounds, dialect)
            clock: Time source shared by every service using this store
        """
        self.database = database
        self.settings = settings
        self.clock = clock
        self._lock_timeout_ms = int(settings.transaction_max_wait_seconds * 1000)
        self._unit_timeout = settings.transaction_timeout_seconds

    def now(self):
        """Current time from the store clock (UTC)."""
        return self.clock()

    async def _apply_bounds(self, session: AsyncSession) -> None:
        if not self.settings.is_postgres:
            return
        await session.execute(
            text(f"SET LOCAL lock_timeout = '{self._lock_timeout_ms}ms'")
        )
        await session.execute(
            text(
                f"SET LOCAL statement_timeout = "
                f"'{int(self._unit_timeout * 1000)}ms'"
            )
        )

    async def _run(self, work: UnitOfWork[T]) -> T:
        async with self.database.session_maker() as session:
            async with session.begin():
                await self._apply_bounds(session)
                return await work(session)

    async def run_in_transaction(
        self, work: UnitOfWork[T], *, label: str
    ) -> T:
        """
        Run ``work(session)`` as one atomic unit.

        Args:
            work: Coroutine function receiving the unit's session
            label: Name used in logs and error messages

        Returns:
            Whatever ``work`` returns, after commit

        Raises:
            LedgerError: Raised by ``work``; the unit is rolled back
            AtomicUnitError: Timeout or store failure; the unit is rolled back
        """
        try:
            return await asyncio.wait_for(
                self._run(work), timeout=self._unit_timeout
            )
        except LedgerError:
            raise
        except TimeoutError as e:
            logger.error(
                f"Atomic unit {label} timed out",
                extra={"label": label, "timeout_seconds": self._unit_timeout},
            )
            raise AtomicUnitError(
                f"{label}: timed out after {self._unit_timeout}s"
            ) from e
        except SQLAlchemyError as e:
            logger.error(
                f"Atomic unit {label} failed: {e}",
                extra={"label": label, "error": str(e)},
            )
            raise AtomicUnitError(f"{label}: store failure") from e

    async def audit(
        self,
        action: str,
        description: str,
        account_id: int | None = None,
    ) -> bool:
        """
        Append a SystemLog in its own unit, best effort.

        Returns:
            True if the entry was committed
        """

        async def _write(session: AsyncSession) -> None:
            await SystemLogRepository(session).append(
                action, description, account_id, created_at=self.now()
            )

        try:
            await self.run_in_transaction(_write, label=f"audit:{action}")
        except Exception as e:
            logger.error(
                f"Could not write audit entry {action}: {e}",
                extra={"action": action, "account_id": account_id},
            )
            return False
        return True

    async def record_failure(
        self,
        action: str,
        description: str,
        account_id: int | None = None,
    ) -> None:
        """
        Record a failed operation after its unit was rolled back.

        A failure here is logged and not raised.
        """
        logger.warning(
            f"{action}: {description}",
            extra={"action": action, "account_id": account_id},
        )
        await self.audit(action, description, account_id)
