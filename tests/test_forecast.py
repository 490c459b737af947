"""
Tests for burn rate, stockout projection and demand statistics.
"""
import pytest
from datetime import date, timedelta
from decimal import Decimal

from lot_costing.domain.models import Movement, RiskTier
from lot_costing.forecast import (
    burn_rate,
    calculate_safety_stock,
    calculate_trend,
    classify_risk,
    daily_consumption,
    depletion_series,
    predict_stockout,
    recommend_reorder,
)

AS_OF = date(2026, 3, 1)
WEEK = [5, 5, 0, 5, 5, 0, 5]


class TestBurnRate:
    """Test average daily consumption."""

    def test_average_includes_zero_days(self):
        """Test zero days count by default: 25 / 7."""
        assert burn_rate(WEEK) == Decimal(25) / Decimal(7)

    def test_exclude_zero_days(self):
        """Test zero days can be dropped: 25 / 5."""
        assert burn_rate(WEEK, exclude_zero_days=True) == Decimal("5")

    def test_trailing_window(self):
        """Test only the last N days are used."""
        assert burn_rate([100, 100, 2, 4], window_days=2) == Decimal("3")

    def test_empty(self):
        """Test empty series has zero rate."""
        assert burn_rate([]) == Decimal("0")
        assert burn_rate([0, 0], exclude_zero_days=True) == Decimal("0")

    def test_negative_counts_as_zero(self):
        """Test negative daily values do not reduce the rate."""
        assert burn_rate([-4, 4]) == Decimal("2")

    def test_invalid_window(self):
        """Test window must be positive."""
        with pytest.raises(ValueError):
            burn_rate(WEEK, window_days=0)


class TestPredictStockout:
    """Test days remaining and risk tiers."""

    def test_exact_division_not_floored_down(self):
        """Test 50 / (25/7) is exactly 14 days: LOW."""
        forecast = predict_stockout(50, burn_rate(WEEK), AS_OF, sku="SKU001")
        assert forecast.days_remaining == 14
        assert forecast.risk_tier == RiskTier.LOW
        assert forecast.projected_date == AS_OF + timedelta(days=14)
        assert forecast.average_daily_consumption == Decimal("3.5714")
        assert not forecast.no_consumption

    @pytest.mark.parametrize("stock,days,tier", [
        (49, 13, RiskTier.HIGH),
        (25, 7, RiskTier.HIGH),
        (24, 6, RiskTier.CRITICAL),
    ])
    def test_tiers(self, stock, days, tier):
        """Test floor of stock / rate and tier bounds."""
        forecast = predict_stockout(stock, burn_rate(WEEK), AS_OF)
        assert forecast.days_remaining == days
        assert forecast.risk_tier == tier

    def test_exclude_zero_days_changes_tier(self):
        """Test rate 5 gives 10 days: HIGH."""
        forecast = predict_stockout(50, burn_rate(WEEK, exclude_zero_days=True), AS_OF)
        assert forecast.days_remaining == 10
        assert forecast.risk_tier == RiskTier.HIGH

    def test_no_consumption(self):
        """Test zero rate: sentinel days, no date, never infinite."""
        forecast = predict_stockout(50, 0, AS_OF)
        assert forecast.days_remaining == 999
        assert forecast.projected_date is None
        assert forecast.risk_tier == RiskTier.LOW
        assert forecast.no_consumption

    def test_no_stock(self):
        """Test no stock: out today, CRITICAL."""
        forecast = predict_stockout(0, 3, AS_OF)
        assert forecast.days_remaining == 0
        assert forecast.projected_date == AS_OF
        assert forecast.risk_tier == RiskTier.CRITICAL

    def test_days_capped(self):
        """Test very slow consumption is capped at the sentinel."""
        forecast = predict_stockout(10000, "0.001", AS_OF)
        assert forecast.days_remaining == 999

    def test_custom_tiers(self):
        """Test tier bounds are configurable."""
        assert classify_risk(9, critical_days=10, high_days=20) == RiskTier.CRITICAL
        assert classify_risk(19, critical_days=10, high_days=20) == RiskTier.HIGH
        assert classify_risk(20, critical_days=10, high_days=20) == RiskTier.LOW


class TestDailyConsumption:
    """Test daily outbound series."""

    def _movements(self):
        return [
            Movement(sku="SKU001", date=date(2026, 1, 1), kind="ISSUE", quantity=2),
            Movement(sku="SKU001", date=date(2026, 1, 2), kind="WRITE_OFF", quantity=4),
            Movement(sku="SKU001", date=date(2026, 1, 3), kind="ISSUE", quantity=4),
            Movement(sku="SKU001", date=date(2026, 1, 3), kind="RECEIPT", quantity=50, unit_cost=1),
            Movement(sku="SKU001", date=date(2026, 1, 4), kind="ISSUE", quantity=9),
        ]

    def test_issues_only(self):
        """Test write-offs and receipts are excluded by default."""
        series = daily_consumption(self._movements(), date(2026, 1, 3), window_days=3)
        assert series == [Decimal("2"), Decimal("0"), Decimal("4")]

    def test_with_write_offs(self):
        """Test write-offs can be counted as consumption."""
        series = daily_consumption(self._movements(), date(2026, 1, 3), window_days=3, include_write_offs=True)
        assert series == [Decimal("2"), Decimal("4"), Decimal("4")]

    def test_malformed_rows_ignored(self):
        """Test bad quantities are left out."""
        movements = [Movement(sku="SKU001", date=date(2026, 1, 3), kind="ISSUE", quantity="x")]
        assert daily_consumption(movements, date(2026, 1, 3), window_days=2) == [Decimal("0"), Decimal("0")]


class TestDemandStatistics:
    """Test trend, safety stock, depletion and reorder helpers."""

    def test_linear_trend(self):
        """Test a perfect line."""
        trend = calculate_trend([1, 2, 3, 4])
        assert trend.slope == pytest.approx(1.0)
        assert trend.intercept == pytest.approx(1.0)
        assert trend.r_squared == pytest.approx(1.0)
        assert trend.prediction == pytest.approx(5.0)
        assert trend.trend == "UP"
        assert trend.growth_rate == pytest.approx(40.0)

    def test_flat_trend(self):
        """Test constant series is STABLE."""
        trend = calculate_trend([3, 3, 3])
        assert trend.trend == "STABLE"
        assert trend.r_squared == 0.0

    def test_short_series(self):
        """Test fewer than two points."""
        assert calculate_trend([7]).prediction == 7.0
        assert calculate_trend([]).prediction == 0.0

    def test_safety_stock(self):
        """Test ceil(1.65 * sample std * sqrt(7))."""
        assert calculate_safety_stock([10, 12, 8, 10]) == 8
        assert calculate_safety_stock([10]) == 0

    def test_depletion_series(self):
        """Test 7 reconstructed days plus projection to zero."""
        points = depletion_series(10, 4, AS_OF)
        assert [p.stock for p in points] == [34, 30, 26, 22, 18, 14, 10, 6, 2, 0]
        assert [p.predicted for p in points].count(True) == 3
        assert points[6].date == AS_OF
        assert points[-1].date == AS_OF + timedelta(days=3)

    def test_depletion_horizon(self):
        """Test projection stops at the horizon."""
        points = depletion_series(1000, 1, AS_OF, past_days=1)
        assert len(points) == 31

    def test_reorder(self):
        """Test stock below reorder point."""
        advice = recommend_reorder(10, 2)
        assert advice.action == "REORDER"
        assert advice.reorder_point == Decimal("28")
        assert advice.quantity == 48

    def test_no_reorder(self):
        """Test stock above reorder point."""
        advice = recommend_reorder(30, 2)
        assert advice.action == "OK"
        assert advice.quantity == 0
