"""
SystemLog repository.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yieldledger.models.system_log import SystemLog
from yieldledger.repositories.base import BaseRepository


class SystemLogRepository(BaseRepository[SystemLog]):
    """Append-only audit log access."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize system log repository."""
        super().__init__(SystemLog, session)

    async def append(
        self,
        action: str,
        description: str,
        account_id: int | None = None,
        created_at: datetime | None = None,
    ) -> SystemLog:
        """Append one audit entry to the current unit."""
        entry = SystemLog(
            action=str(action), description=description, account_id=account_id
        )
        if created_at is not None:
            entry.created_at = created_at
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def recent_by_actions(
        self, actions: list[str], limit: int = 5
    ) -> list[SystemLog]:
        """Latest entries carrying any of ``actions``."""
        stmt = (
            select(SystemLog)
            .where(SystemLog.action.in_([str(a) for a in actions]))
            .order_by(SystemLog.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
