"""
Services.

Business logic layer. Every service is built from an explicit LedgerStore.
"""

# Base Service Infrastructure
from yieldledger.services.base_service import BaseService, log_operation
from yieldledger.services.balance_mutator import BalanceChange, BalanceMutator
from yieldledger.services.ledger_store import LedgerStore

# Core Services
from yieldledger.services.payout import PayoutEngine, PayoutStatusService
from yieldledger.services.purchase_service import PurchaseResult, PurchaseWorkflow
from yieldledger.services.referral import (
    ReferralBonusDistributor,
    ReferralChainManager,
    ReferralNetworkService,
)

# Account Services
from yieldledger.services.account_service import AccountService
from yieldledger.services.bank_account_service import BankAccountService
from yieldledger.services.deposit_service import DepositService
from yieldledger.services.income_service import IncomeService
from yieldledger.services.portfolio_service import PortfolioService
from yieldledger.services.withdrawal_service import WithdrawalService

# Admin Services
from yieldledger.services.admin import AdminService


__all__ = [
    "AccountService",
    "AdminService",
    "BalanceChange",
    "BalanceMutator",
    "BankAccountService",
    "BaseService",
    "DepositService",
    "IncomeService",
    "LedgerStore",
    "PayoutEngine",
    "PayoutStatusService",
    "PortfolioService",
    "PurchaseResult",
    "PurchaseWorkflow",
    "ReferralBonusDistributor",
    "ReferralChainManager",
    "ReferralNetworkService",
    "WithdrawalService",
    "log_operation",
]
