"""
Payout services package.

- engine: automatic daily payouts and user-initiated income collection
- status: operator view of payout activity
"""

from yieldledger.services.payout.engine import (
    CreditStatus,
    PayoutBatchResult,
    PayoutEngine,
    PayoutError,
    PayoutResult,
)
from yieldledger.services.payout.status import PayoutStatus, PayoutStatusService


__all__ = [
    "CreditStatus",
    "PayoutBatchResult",
    "PayoutEngine",
    "PayoutError",
    "PayoutResult",
    "PayoutStatus",
    "PayoutStatusService",
]
