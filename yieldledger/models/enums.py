"""
Enumerations shared by models and services.
"""

from enum import StrEnum


class TransactionType(StrEnum):
    """Ledger entry type tags."""

    PURCHASE = "purchase"
    DAILY_PAYOUT_AUTO = "daily_payout_auto"
    PRODUCT_INCOME = "product_income"
    REFERRAL_BONUS = "referral_bonus"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    ADMIN_ADDITION = "admin_addition"
    ADMIN_DEDUCTION = "admin_deduction"
    PURCHASE_REFUND = "purchase_refund"
    WITHDRAWAL_REFUND = "withdrawal_refund"
    DAILY_CHECKIN = "daily_checkin"


class PurchaseStatus(StrEnum):
    """Purchase lifecycle. completed and cancelled are terminal."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RequestStatus(StrEnum):
    """Deposit and withdrawal request lifecycle."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class SystemAction(StrEnum):
    """SystemLog action tags."""

    ACCOUNT_REGISTERED = "ACCOUNT_REGISTERED"
    ACCOUNT_DELETED = "ACCOUNT_DELETED"
    BALANCE_ADJUSTED = "BALANCE_ADJUSTED"
    PURCHASE_DEBIT = "PURCHASE_DEBIT"
    PURCHASE_COMPLETED = "PURCHASE_COMPLETED"
    PURCHASE_FAILED = "PURCHASE_FAILED"
    PURCHASE_CANCELLED = "PURCHASE_CANCELLED"
    PRODUCT_GRANTED = "PRODUCT_GRANTED"
    REFERRAL_BONUS = "REFERRAL_BONUS"
    AUTO_DAILY_PAYOUT = "AUTO_DAILY_PAYOUT"
    AUTO_PAYOUT_CYCLE_COMPLETED = "AUTO_PAYOUT_CYCLE_COMPLETED"
    AUTO_PAYOUTS_COMPLETED = "AUTO_PAYOUTS_COMPLETED"
    AUTO_PAYOUTS_ERROR = "AUTO_PAYOUTS_ERROR"
    PRODUCT_INCOME_COLLECTED = "PRODUCT_INCOME_COLLECTED"
    DAILY_CHECKIN = "DAILY_CHECKIN"
    DEPOSIT_REQUEST = "DEPOSIT_REQUEST"
    DEPOSIT_APPROVED = "DEPOSIT_APPROVED"
    DEPOSIT_REJECTED = "DEPOSIT_REJECTED"
    WITHDRAWAL_REQUEST = "WITHDRAWAL_REQUEST"
    WITHDRAWAL_APPROVED = "WITHDRAWAL_APPROVED"
    WITHDRAWAL_REJECTED = "WITHDRAWAL_REJECTED"
    ADMIN_BALANCE_ADD = "ADMIN_BALANCE_ADD"
    ADMIN_BALANCE_DEDUCT = "ADMIN_BALANCE_DEDUCT"
    ADMIN_SET_BALANCE = "ADMIN_SET_BALANCE"
    BULK_BALANCE_ADJUSTMENT = "BULK_BALANCE_ADJUSTMENT"
    BANK_ACCOUNT_CREATED = "BANK_ACCOUNT_CREATED"
    BANK_ACCOUNT_UPDATED = "BANK_ACCOUNT_UPDATED"
    BANK_ACCOUNT_DELETED = "BANK_ACCOUNT_DELETED"
    ATOMIC_UNIT_FAILED = "ATOMIC_UNIT_FAILED"
