"""
ReferralBonus model.

Commission audit record, one row per bonus paid to an up-line member.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from yieldledger.models.base import Base
from yieldledger.models.types import MoneyType, PercentType


class ReferralBonus(Base):
    """Referral commission paid on a purchase."""

    __tablename__ = "referral_bonuses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Who received the bonus
    referrer_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Who made the purchase
    referred_account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    purchase_id: Mapped[int | None] = mapped_column(
        ForeignKey("purchases.id", ondelete="SET NULL"), nullable=True, index=True
    )

    level: Mapped[int] = mapped_column(Integer, nullable=False)
    purchase_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    bonus_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    bonus_percentage: Mapped[Decimal] = mapped_column(PercentType, nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReferralBonus(referrer_id={self.referrer_id}, "
            f"referred={self.referred_account_id}, level={self.level}, "
            f"bonus={self.bonus_amount})>"
        )
