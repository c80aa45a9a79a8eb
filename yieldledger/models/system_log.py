"""
SystemLog model.

Append-only operational audit trail, distinct from the financial ledger.
``account_id`` is a plain column so batch summaries and logs about deleted
accounts survive.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from yieldledger.models.base import Base


class SystemLog(Base):
    """Audit entry: action tag + free-text description."""

    __tablename__ = "system_logs"
    __table_args__ = (
        Index("idx_system_log_action_created", "action", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    account_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<SystemLog(id={self.id}, action={self.action}, account_id={self.account_id})>"
