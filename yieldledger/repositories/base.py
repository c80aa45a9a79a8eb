"""
Base repository.

Generic CRUD shared by all repositories. Repositories never commit: the
atomic unit that owns the session decides when effects become visible.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    CRUD over one model within the caller's session.

    Example:
        class AccountRepository(BaseRepository[Account]):
            def __init__(self, session: AsyncSession):
                super().__init__(Account, session)
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self.model = model
        self.session = session

    async def get_by_id(self, id: int) -> ModelType | None:
        return await self.session.get(self.model, id)

    async def lock_by_id(self, id: int) -> ModelType | None:
        """
        Load a row with SELECT ... FOR UPDATE, held until the unit ends.

        ``populate_existing`` overwrites any identity-map copy so the caller
        sees the locked row's committed values.
        """
        stmt = (
            select(self.model)
            .where(self.model.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by(self, **filters: Any) -> ModelType | None:
        """Single row matching equality filters, or None."""
        result = await self.session.execute(
            select(self.model).filter_by(**filters)
        )
        return result.scalar_one_or_none()

    async def find_all(
        self,
        limit: int | None = None,
        offset: int | None = None,
        **filters: Any,
    ) -> list[ModelType]:
        """
        Rows matching equality filters, newest id first.

        Args:
            limit: Page size, unlimited when falsy
            offset: Rows to skip
            **filters: Column filters
        """
        stmt = select(self.model).filter_by(**filters).order_by(self.model.id.desc())
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, **data: Any) -> ModelType:
        """Insert a row and return it with server defaults loaded."""
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def delete_where(self, *criteria: Any) -> int:
        """Bulk delete; returns the number of removed rows."""
        result = await self.session.execute(delete(self.model).where(*criteria))
        return result.rowcount or 0

    async def count(self, **filters: Any) -> int:
        stmt = select(func.count()).select_from(self.model)
        if filters:
            stmt = stmt.filter_by(**filters)
        result = await self.session.execute(stmt)
        return result.scalar() or 0
