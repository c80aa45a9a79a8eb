"""
Tests for referral commission calculation.

Rates: level 1 = 25%, level 2 = 2%, level 3 = 1%, truncated to whole KZ.
"""

from decimal import Decimal

import pytest

from yieldledger.services.referral.bonus_distributor import (
    BonusDetail,
    BonusDistribution,
    calculate_bonus,
)


class TestCalculateBonus:
    """Test calculate_bonus."""

    @pytest.mark.parametrize(
        ("amount", "level", "expected"),
        [
            (Decimal("500"), 1, Decimal("125")),
            (Decimal("500"), 2, Decimal("10")),
            (Decimal("500"), 3, Decimal("5")),
            (Decimal("999"), 1, Decimal("249")),
            (Decimal("149"), 2, Decimal("2")),
            (Decimal("99"), 3, Decimal("0")),
        ],
    )
    def test_rates_are_floored(self, amount, level, expected):
        assert calculate_bonus(amount, level) == expected

    def test_level_beyond_depth_earns_nothing(self):
        assert calculate_bonus(Decimal("10000"), 4) == Decimal("0")
        assert calculate_bonus(Decimal("10000"), 0) == Decimal("0")

    def test_zero_amount(self):
        assert calculate_bonus(Decimal("0"), 1) == Decimal("0")


class TestBonusDistribution:
    """Test per-level accumulation."""

    def test_add_tracks_levels_and_total(self):
        distribution = BonusDistribution()
        distribution.add(
            BonusDetail(
                level=1,
                referrer_id=1,
                percentage=Decimal("25.00"),
                amount=Decimal("125"),
                new_balance=Decimal("625"),
            )
        )
        distribution.add(
            BonusDetail(
                level=3,
                referrer_id=3,
                percentage=Decimal("1.00"),
                amount=Decimal("5"),
                new_balance=Decimal("505"),
            )
        )

        assert distribution.level1 == Decimal("125")
        assert distribution.level2 == Decimal("0")
        assert distribution.level3 == Decimal("5")
        assert distribution.total == Decimal("130")
        assert len(distribution.details) == 2
