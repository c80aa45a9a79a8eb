"""
DailyCheckin model.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from yieldledger.models.base import Base
from yieldledger.models.types import MoneyType


class DailyCheckin(Base):
    """One check-in reward per account per calendar day."""

    __tablename__ = "daily_checkins"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    checkin_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    amount_received: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    next_checkin: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
