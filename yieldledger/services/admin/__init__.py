"""
Admin services package.

- actions: closed tagged union of dispatchable admin actions
- service: administrator operations on balances, requests, purchases and accounts
"""

from yieldledger.services.admin.actions import (
    AddBalanceAction,
    AdminAction,
    DeductBalanceAction,
    SetBalanceAction,
    SimulateCheckinAction,
    SimulateCollectIncomeAction,
    parse_admin_action,
)
from yieldledger.services.admin.service import (
    AccountFullData,
    AccountListing,
    AccountSummary,
    AdjustmentResult,
    AdminService,
    BulkItemError,
    BulkResult,
    CancellationResult,
    PlatformStatistics,
    ReconciliationReport,
    ReferralMember,
    RequestDecision,
    RequestSummary,
)


__all__ = [
    "AccountFullData",
    "AccountListing",
    "AccountSummary",
    "AddBalanceAction",
    "AdjustmentResult",
    "AdminAction",
    "AdminService",
    "BulkItemError",
    "BulkResult",
    "CancellationResult",
    "DeductBalanceAction",
    "PlatformStatistics",
    "ReconciliationReport",
    "ReferralMember",
    "RequestDecision",
    "RequestSummary",
    "SetBalanceAction",
    "SimulateCheckinAction",
    "SimulateCollectIncomeAction",
    "parse_admin_action",
]
