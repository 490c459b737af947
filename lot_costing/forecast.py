"""
Consumption velocity and stockout projection.

Model: trailing-window average daily consumption (burn rate).
- days remaining = floor(current stock / burn rate)
- projected stockout date = as_of + days remaining
- risk tier: CRITICAL < 7 days, HIGH < 14 days, LOW otherwise

Zero or negative burn rate never produces an infinite value: days remaining is
capped at a sentinel and the forecast carries no_consumption=True.

Trend, safety stock and depletion helpers are descriptive statistics on the
daily series and use numpy floats; stock and burn rate stay Decimal.
"""
import math
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence

import numpy as np

from .domain.models import Movement, MovementKind, RiskTier, StockoutForecast
from .domain.money import ZERO, qty, to_decimal
from .domain.validation import validate_movement


DEFAULT_WINDOW_DAYS = 7
NO_CONSUMPTION_DAYS = 999
CRITICAL_DAYS = 7
HIGH_DAYS = 14
MAX_PROJECTION_DAYS = 30

# Division noise guard for stock / rate before flooring
_RATIO_QUANT = Decimal("0.000000001")
RATE_QUANT = Decimal("0.0001")


def burn_rate(
    daily_quantities: Sequence,
    window_days: Optional[int] = None,
    exclude_zero_days: bool = False,
) -> Decimal:
    """
    Average daily consumption over a trailing window.

    Args:
        daily_quantities: Daily consumed quantities, oldest first
        window_days: Keep only the last N days (None = whole series)
        exclude_zero_days: Drop zero days before averaging (e.g. days the SKU
                           was not sold at all)

    Returns:
        Unrounded Decimal rate (0 for an empty window). Negative inputs count as 0.

    Example:
        >>> burn_rate([5, 5, 0, 5, 5, 0, 5])   # 25 / 7
        Decimal('3.571428571428571428571428571')
    """
    if window_days is not None and window_days <= 0:
        raise ValueError(f"window_days must be positive, got {window_days}")

    values = [max(ZERO, to_decimal(q) or ZERO) for q in daily_quantities]
    if window_days is not None:
        values = values[-window_days:]
    if exclude_zero_days:
        values = [v for v in values if v > 0]
    if not values:
        return ZERO
    return sum(values, ZERO) / Decimal(len(values))


def classify_risk(days_remaining: int, critical_days: int = CRITICAL_DAYS, high_days: int = HIGH_DAYS) -> RiskTier:
    """Risk tier for days of cover; each bound is exclusive (14 days is LOW)."""
    if days_remaining < critical_days:
        return RiskTier.CRITICAL
    if days_remaining < high_days:
        return RiskTier.HIGH
    return RiskTier.LOW


def predict_stockout(
    current_stock,
    rate,
    as_of: date,
    sku: str = "",
    days_cap: int = NO_CONSUMPTION_DAYS,
    critical_days: int = CRITICAL_DAYS,
    high_days: int = HIGH_DAYS,
) -> StockoutForecast:
    """
    Project when stock runs out at the given burn rate.

    Args:
        current_stock: On-hand quantity
        rate: Average daily consumption (see burn_rate)
        as_of: Reference date (injected, never read from the clock)
        sku: SKU identifier carried on the result
        days_cap: Sentinel used when there is no consumption
        critical_days / high_days: Risk tier bounds (exclusive)

    Returns:
        StockoutForecast
    """
    stock = to_decimal(current_stock) or ZERO
    rate = to_decimal(rate) or ZERO
    display_rate = rate.quantize(RATE_QUANT, rounding=ROUND_HALF_UP)

    if stock <= 0:
        return StockoutForecast(
            sku=sku,
            current_stock=qty(stock),
            average_daily_consumption=display_rate,
            days_remaining=0,
            projected_date=as_of,
            risk_tier=RiskTier.CRITICAL,
            no_consumption=rate <= 0,
        )

    if rate <= 0:
        return StockoutForecast(
            sku=sku,
            current_stock=qty(stock),
            average_daily_consumption=display_rate,
            days_remaining=days_cap,
            projected_date=None,
            risk_tier=classify_risk(days_cap, critical_days, high_days),
            no_consumption=True,
        )

    ratio = (stock / rate).quantize(_RATIO_QUANT, rounding=ROUND_HALF_UP)
    days_remaining = min(int(ratio.to_integral_value(rounding=ROUND_FLOOR)), days_cap)

    return StockoutForecast(
        sku=sku,
        current_stock=qty(stock),
        average_daily_consumption=display_rate,
        days_remaining=days_remaining,
        projected_date=as_of + timedelta(days=days_remaining),
        risk_tier=classify_risk(days_remaining, critical_days, high_days),
        no_consumption=False,
    )


def daily_consumption(
    movements: Iterable[Movement],
    as_of: date,
    window_days: int = DEFAULT_WINDOW_DAYS,
    include_write_offs: bool = False,
    sku: Optional[str] = None,
) -> List[Decimal]:
    """
    Daily outbound quantities for the window ending on as_of (inclusive).

    Returns one value per calendar day, oldest first, zeros for quiet days.
    Malformed movements are ignored.
    """
    if window_days <= 0:
        raise ValueError(f"window_days must be positive, got {window_days}")

    kinds = {MovementKind.ISSUE}
    if include_write_offs:
        kinds.add(MovementKind.WRITE_OFF)

    start = as_of - timedelta(days=window_days - 1)
    totals = [ZERO] * window_days
    for movement in movements:
        is_valid, _ = validate_movement(movement, sku=sku)
        if not is_valid or movement.kind not in kinds:
            continue
        if start <= movement.date <= as_of:
            totals[(movement.date - start).days] += movement.quantity
    return totals


# ---------------------------------------------------------------------------
# Descriptive statistics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrendResult:
    """Least-squares linear trend of a series."""
    slope: float
    intercept: float
    r_squared: float
    prediction: float   # Next period, never negative
    trend: str          # "UP", "DOWN" or "STABLE"
    growth_rate: float  # Slope as % of the series mean


def calculate_trend(series: Sequence[float], flat_slope: float = 0.1) -> TrendResult:
    """
    Fit y = slope * x + intercept over x = 0..n-1.

    Fewer than two points gives a flat trend predicting the single value (or 0).
    """
    y = np.asarray([float(v) for v in series], dtype=float)
    n = len(y)
    if n < 2:
        return TrendResult(
            slope=0.0,
            intercept=0.0,
            r_squared=0.0,
            prediction=float(y[0]) if n else 0.0,
            trend="STABLE",
            growth_rate=0.0,
        )

    x = np.arange(n, dtype=float)
    slope, intercept = np.polyfit(x, y, 1)

    fitted = slope * x + intercept
    ss_res = float(np.sum((y - fitted) ** 2))
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    r_squared = 0.0 if ss_tot == 0 else 1.0 - ss_res / ss_tot

    if slope > flat_slope:
        trend = "UP"
    elif slope < -flat_slope:
        trend = "DOWN"
    else:
        trend = "STABLE"

    mean = float(y.mean())
    return TrendResult(
        slope=float(slope),
        intercept=float(intercept),
        r_squared=r_squared,
        prediction=max(0.0, float(slope * n + intercept)),
        trend=trend,
        growth_rate=0.0 if mean == 0 else float(slope) / mean * 100,
    )


def calculate_safety_stock(series: Sequence[float], lead_time_days: int = 7, z_score: float = 1.65) -> int:
    """
    Safety stock = ceil(z * sample std of daily usage * sqrt(lead time)).

    1.65 ~ 95% service level, 2.33 ~ 99%.
    """
    if len(series) < 2:
        return 0
    std = float(np.std(np.asarray([float(v) for v in series], dtype=float), ddof=1))
    return int(math.ceil(z_score * std * math.sqrt(lead_time_days)))


@dataclass(frozen=True)
class DepletionPoint:
    """One point of a stock depletion chart."""
    date: date
    stock: int
    predicted: bool


def depletion_series(
    current_stock,
    rate,
    as_of: date,
    past_days: int = 7,
    horizon_days: int = MAX_PROJECTION_DAYS,
) -> List[DepletionPoint]:
    """
    Back-projected past stock plus forward projection until stock hits zero.

    Past points are reconstructed as stock + rate * days ago; the forward
    projection stops at zero or after horizon_days.
    """
    stock = to_decimal(current_stock) or ZERO
    rate = max(ZERO, to_decimal(rate) or ZERO)

    def _whole(value: Decimal) -> int:
        return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    points = [
        DepletionPoint(date=as_of - timedelta(days=i), stock=_whole(stock + rate * i), predicted=False)
        for i in range(past_days - 1, -1, -1)
    ]

    projected = stock
    days = 0
    while projected > 0 and days < horizon_days:
        days += 1
        projected = max(ZERO, projected - rate)
        points.append(DepletionPoint(date=as_of + timedelta(days=days), stock=_whole(projected), predicted=True))
    return points


@dataclass(frozen=True)
class ReorderRecommendation:
    """Reorder advice from days-of-cover targets."""
    action: str          # "REORDER" or "OK"
    quantity: int
    reorder_point: Decimal


def recommend_reorder(
    current_stock,
    daily_demand,
    lead_time_days: int = 7,
    safety_stock_days: int = 7,
) -> ReorderRecommendation:
    """
    Reorder when stock is below daily demand * (lead time + safety days).

    The suggested quantity tops stock back up to the reorder point plus half a
    month (15 days) of demand.
    """
    stock = to_decimal(current_stock) or ZERO
    demand = max(ZERO, to_decimal(daily_demand) or ZERO)
    reorder_point = qty(demand * (lead_time_days + safety_stock_days))

    if stock < reorder_point:
        shortage = reorder_point - stock + demand * 15
        return ReorderRecommendation(
            action="REORDER",
            quantity=int(shortage.to_integral_value(rounding=ROUND_CEILING)),
            reorder_point=reorder_point,
        )
    return ReorderRecommendation(action="OK", quantity=0, reorder_point=reorder_point)
