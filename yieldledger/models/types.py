"""
Standard type definitions for database models.

Provides consistent types for monetary and percentage fields across all models.
"""

from sqlalchemy import Numeric

# Standard money type for amounts and balances (KZ)
# Precision: 18 digits total, 2 after decimal point
MoneyType = Numeric(18, 2)

# Percentage type for commission rates
# Precision: 5 digits total, 2 after decimal point (e.g. 25.00, 2.00)
PercentType = Numeric(5, 2)
