"""
ReferralLevel model.

Closure-table edge materialized at registration: ``referrer_id`` sits
``level`` steps above ``account_id`` in the inviter chain.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from yieldledger.models.base import Base


class ReferralLevel(Base):
    """Up-line edge (referrer -> referred account, level 1..3)."""

    __tablename__ = "referral_levels"
    __table_args__ = (
        CheckConstraint("level >= 1 AND level <= 3", name="level_range"),
        UniqueConstraint("account_id", "level", name="uq_referral_level_account_level"),
        UniqueConstraint(
            "referrer_id", "account_id", name="uq_referral_level_referrer_account"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    referrer_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReferralLevel(referrer_id={self.referrer_id}, "
            f"account_id={self.account_id}, level={self.level})>"
        )
