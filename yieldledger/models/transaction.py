"""
Transaction model.

Append-only ledger entry. Exactly one row per balance mutation, with
``balance_after`` equal to the balance right after that mutation.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from yieldledger.models.base import Base
from yieldledger.models.types import MoneyType


if TYPE_CHECKING:
    from yieldledger.models.account import Account


class Transaction(Base):
    """Transaction model - the reconciliation source of truth."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transaction_account_created", "account_id", "created_at"),
        Index("idx_transaction_type_created", "type", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(String(40), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)  # signed
    balance_after: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    account: Mapped["Account"] = relationship(
        "Account", back_populates="transactions"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Transaction(id={self.id}, account_id={self.account_id}, "
            f"type={self.type}, amount={self.amount}, "
            f"balance_after={self.balance_after})>"
        )
