"""
Business logic constants.

Single source of truth for commission rates, payout windowing and product
defaults. Amounts are in KZ.
"""

from datetime import timedelta
from decimal import Decimal


# Referral program: commission on the purchase amount per up-line level.
# Levels beyond REFERRAL_DEPTH never earn.
REFERRAL_DEPTH = 3
REFERRAL_RATES: dict[int, Decimal] = {
    1: Decimal("0.25"),  # 25% for level 1 (direct inviter)
    2: Decimal("0.02"),  # 2% for level 2
    3: Decimal("0.01"),  # 1% for level 3
}

# Payout windowing
PAYOUT_INTERVAL = timedelta(hours=24)

# Product defaults applied when a purchase omits them
DEFAULT_DAILY_RETURN = Decimal("13")
DEFAULT_CYCLE_DAYS = 30
MAX_CYCLE_DAYS = 3650

# Account defaults
SIGNUP_BALANCE = 500
REFERRAL_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
REFERRAL_CODE_LENGTH = 6
REFERRAL_CODE_MAX_ATTEMPTS = 20

# Daily check-in reward
CHECKIN_REWARD = Decimal("10")

# Deposits
MINIMUM_DEPOSIT_AMOUNT = 1000

# Purchases created by an administrator carry this product id prefix
ADMIN_GIFT_PRODUCT_PREFIX = "admin_gift_"
