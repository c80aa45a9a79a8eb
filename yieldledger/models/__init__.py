"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from yieldledger.models.account import Account
from yieldledger.models.bank_account import BankAccount
from yieldledger.models.base import Base
from yieldledger.models.daily_checkin import DailyCheckin
from yieldledger.models.deposit import Deposit
from yieldledger.models.enums import (
    PurchaseStatus,
    RequestStatus,
    SystemAction,
    TransactionType,
)
from yieldledger.models.purchase import Purchase
from yieldledger.models.referral_bonus import ReferralBonus
from yieldledger.models.referral_level import ReferralLevel
from yieldledger.models.system_log import SystemLog
from yieldledger.models.transaction import Transaction
from yieldledger.models.withdrawal import Withdrawal

__all__ = [
    # Base
    "Base",
    # Enums
    "PurchaseStatus",
    "RequestStatus",
    "SystemAction",
    "TransactionType",
    # Core Models
    "Account",
    "Purchase",
    "Transaction",
    "SystemLog",
    # Referral Models
    "ReferralLevel",
    "ReferralBonus",
    # Requests
    "Deposit",
    "Withdrawal",
    "DailyCheckin",
    "BankAccount",
]
