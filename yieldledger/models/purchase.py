"""
Purchase model.

One yield position: earns ``daily_return`` once per 24h window until
``cycle_days`` payouts were made or the expiry date passed.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from yieldledger.models.base import Base
from yieldledger.models.enums import PurchaseStatus
from yieldledger.models.types import MoneyType


if TYPE_CHECKING:
    from yieldledger.models.account import Account


class Purchase(Base):
    """Purchase model - yield-bearing product positions."""

    __tablename__ = "purchases"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="amount_non_negative"),
        CheckConstraint("daily_return >= 0", name="daily_return_non_negative"),
        CheckConstraint("cycle_days > 0", name="cycle_days_positive"),
        CheckConstraint("payout_count >= 0", name="payout_count_non_negative"),
        Index("idx_purchase_status_next_payout", "status", "next_payout"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Owner
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Product descriptor
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Terms
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    daily_return: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    cycle_days: Mapped[int] = mapped_column(Integer, nullable=False)

    # Schedule
    purchase_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    next_payout: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    expiry_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default=PurchaseStatus.ACTIVE.value, nullable=False, index=True
    )  # active, completed, cancelled

    # Earnings tracking
    total_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    payout_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_payout: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    account: Mapped["Account"] = relationship(
        "Account", back_populates="purchases"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Purchase(id={self.id}, account_id={self.account_id}, "
            f"product={self.product_name}, amount={self.amount}, "
            f"status={self.status}, payouts={self.payout_count}/{self.cycle_days})>"
        )

    @property
    def is_active(self) -> bool:
        """True while the purchase can still earn."""
        return self.status == PurchaseStatus.ACTIVE.value
