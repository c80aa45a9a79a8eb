"""
Account model.

A balance-holding identity. Balance only changes through the balance mutator.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from yieldledger.models.base import Base
from yieldledger.models.types import MoneyType


if TYPE_CHECKING:
    from yieldledger.models.purchase import Purchase
    from yieldledger.models.transaction import Transaction


class Account(Base):
    """Account model - registered platform users and their balance."""

    __tablename__ = "accounts"

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Identity
    mobile: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, nullable=False
    )
    referral_code: Mapped[str] = mapped_column(
        String(16), unique=True, index=True, nullable=False
    )

    # Referral (direct inviter only; the full up-line is in referral_levels)
    inviter_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Balances
    balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    initial_balance: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False,
        comment="Signup balance; not represented by a transaction row",
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    purchases: Mapped[list["Purchase"]] = relationship(
        "Purchase", back_populates="account", lazy="raise"
    )
    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction", back_populates="account", lazy="raise"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Account(id={self.id}, mobile={self.mobile}, "
            f"balance={self.balance}, referral_code={self.referral_code})>"
        )
