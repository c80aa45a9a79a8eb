"""
Tests for purchase progress views.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

from yieldledger.models.purchase import Purchase
from yieldledger.services.portfolio_service import build_view


NOW = datetime(2026, 1, 10, 12, 0, tzinfo=UTC)


def _purchase(**overrides) -> Purchase:
    values = dict(
        id=1,
        account_id=1,
        product_id="p1",
        product_name="Starter",
        quantity=1,
        amount=Decimal("500.00"),
        daily_return=Decimal("13.00"),
        cycle_days=30,
        purchase_date=NOW - timedelta(days=10),
        next_payout=NOW + timedelta(hours=6),
        expiry_date=NOW + timedelta(days=20),
        status="active",
        total_earned=Decimal("130.00"),
        payout_count=10,
    )
    values.update(overrides)
    return Purchase(**values)


class TestBuildView:
    """Test build_view."""

    def test_active_purchase(self):
        view = build_view(_purchase(), NOW)

        assert view.display_status == "active"
        assert view.progress_percentage == Decimal("33.33")
        assert view.total_return == Decimal("390.00")
        assert view.days_remaining == 20
        assert view.next_payout == NOW + timedelta(hours=6)

    def test_progress_capped_at_100(self):
        view = build_view(_purchase(payout_count=45), NOW)
        assert view.progress_percentage == Decimal("100.00")

    def test_active_past_expiry_is_shown_expired(self):
        view = build_view(_purchase(expiry_date=NOW - timedelta(minutes=1)), NOW)

        assert view.status == "active"
        assert view.display_status == "expired"
        assert view.next_payout is None
        assert view.days_remaining == 0

    def test_completed_purchase(self):
        view = build_view(_purchase(status="completed", payout_count=30), NOW)

        assert view.display_status == "completed"
        assert view.next_payout is None
        assert view.days_remaining == 0

    def test_naive_timestamps_from_store(self):
        view = build_view(
            _purchase(expiry_date=(NOW + timedelta(days=5)).replace(tzinfo=None)),
            NOW,
        )
        assert view.expiry_date.tzinfo is UTC
        assert view.days_remaining == 5
