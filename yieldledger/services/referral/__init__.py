"""
Referral services package.

- chain_manager: materializes the up-line at registration
- bonus_distributor: pays purchase commissions to the up-line
- network: team statistics and commission history
"""

from yieldledger.services.referral.bonus_distributor import (
    BonusDetail,
    BonusDistribution,
    BonusError,
    ReferralBonusDistributor,
    calculate_bonus,
)
from yieldledger.services.referral.chain_manager import ReferralChainManager
from yieldledger.services.referral.network import (
    LevelStats,
    ReferralNetworkService,
    TeamStatistics,
)


__all__ = [
    "BonusDetail",
    "BonusDistribution",
    "BonusError",
    "LevelStats",
    "ReferralBonusDistributor",
    "ReferralChainManager",
    "ReferralNetworkService",
    "TeamStatistics",
    "calculate_bonus",
]
