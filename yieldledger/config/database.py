"""
Database configuration.

Builds the async engine and session maker from explicit settings.
"""

from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from yieldledger.config.settings import Settings


class Database:
    """
    Owner of the async engine and session maker.

    Constructed once per process and handed to the ledger store; nothing
    in the package reaches for a module-level engine.
    """

    def __init__(
        self,
        settings: Settings,
        engine: AsyncEngine | None = None,
    ) -> None:
        """
        Initialize database handle.

        Args:
            settings: Application settings
            engine: Pre-built engine (tests inject an in-memory one)
        """
        self.settings = settings
        self.engine = engine or self._create_engine(settings)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @staticmethod
    def _create_engine(settings: Settings) -> AsyncEngine:
        kwargs: dict = {"echo": settings.database_echo}
        if settings.is_postgres:
            kwargs.update(pool_pre_ping=True, pool_size=10, max_overflow=20)
        else:
            kwargs["poolclass"] = NullPool
        return create_async_engine(settings.database_url, **kwargs)

    async def check_connection(self) -> None:
        """
        Verify the database is reachable.

        Raises:
            Exception: Driver error when the database cannot be reached
        """
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection verified")

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()
        logger.info("Database connections closed")
