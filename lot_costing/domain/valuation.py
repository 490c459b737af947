"""
Stock valuation and aging from a ledger snapshot.

Pure functions of (lots, as_of). No I/O.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence, Tuple

from .models import Lot
from .money import ZERO, money, percent, qty, unit_cost


AGING_THRESHOLD_DAYS = 90
EXPIRY_HORIZON_DAYS = 14


class MovementStatus(Enum):
    """Sales velocity bucket based on days since the last issue."""
    FAST_MOVING = "FAST_MOVING"            # <= 15 days
    NORMAL_MOVING = "NORMAL_MOVING"        # <= 60 days
    SLOW_MOVING = "SLOW_MOVING"            # <= 90 days
    VERY_SLOW_MOVING = "VERY_SLOW_MOVING"  # <= 180 days
    DEADSTOCK = "DEADSTOCK"                # older, or never issued


_STATUS_LIMITS = (
    (15, MovementStatus.FAST_MOVING),
    (60, MovementStatus.NORMAL_MOVING),
    (90, MovementStatus.SLOW_MOVING),
    (180, MovementStatus.VERY_SLOW_MOVING),
)


def classify_movement_status(days_since_last_issue: Optional[int]) -> MovementStatus:
    """Bucket a SKU by days since its last issue (None = never issued)."""
    if days_since_last_issue is None:
        return MovementStatus.DEADSTOCK
    for limit, status in _STATUS_LIMITS:
        if days_since_last_issue <= limit:
            return status
    return MovementStatus.DEADSTOCK


@dataclass(frozen=True)
class LotAge:
    """Valuation line for one open lot."""
    lot_id: str
    receipt_date: date
    remaining_qty: Decimal
    unit_cost: Decimal
    value: Decimal
    age_days: int
    expiry_date: Optional[date] = None
    days_until_expiry: Optional[int] = None


@dataclass(frozen=True)
class Valuation:
    """Stock, value and age summary of one SKU."""
    sku: str
    as_of: date
    total_stock: Decimal
    total_value: Decimal
    weighted_average_cost: Decimal
    lots: Tuple[LotAge, ...]
    max_age_days: int
    aging_threshold_days: int = AGING_THRESHOLD_DAYS

    @property
    def is_aging(self) -> bool:
        """True when the oldest open lot is beyond the aging threshold."""
        return self.max_age_days > self.aging_threshold_days

    @property
    def oldest_receipt_date(self) -> Optional[date]:
        return min((lot.receipt_date for lot in self.lots), default=None)


@dataclass(frozen=True)
class ExpiryExposure:
    """Quantities at risk of expiry."""
    total_stock: Decimal
    expired_qty: Decimal
    expiring_soon_qty: Decimal  # Not expired, expiring within the horizon
    waste_risk_percent: Decimal


class ValuationCalculator:
    """
    Valuation of open lots.

    Calculates:
    - Total stock and total value
    - Weighted-average cost (0 when there is no stock)
    - Per-lot age and the oldest age (aging signal)
    - Expiry exposure
    """

    @staticmethod
    def value(
        sku: str,
        lots: Sequence[Lot],
        as_of: date,
        aging_threshold_days: int = AGING_THRESHOLD_DAYS,
    ) -> Valuation:
        """
        Value a ledger snapshot as of a date.

        Args:
            sku: SKU identifier
            lots: Open lots (canonical order)
            as_of: Reference date for ages
            aging_threshold_days: Age beyond which the SKU is flagged as aging

        Returns:
            Valuation
        """
        open_lots = [lot for lot in lots if lot.remaining_qty > 0]
        total_stock = sum((lot.remaining_qty for lot in open_lots), ZERO)
        raw_value = sum((lot.value for lot in open_lots), ZERO)
        wac = raw_value / total_stock if total_stock > 0 else ZERO

        lines = tuple(
            LotAge(
                lot_id=lot.lot_id,
                receipt_date=lot.receipt_date,
                remaining_qty=lot.remaining_qty,
                unit_cost=lot.unit_cost,
                value=money(lot.value),
                age_days=lot.age_days(as_of),
                expiry_date=lot.expiry_date,
                days_until_expiry=lot.days_until_expiry(as_of),
            )
            for lot in open_lots
        )

        return Valuation(
            sku=sku,
            as_of=as_of,
            total_stock=qty(total_stock),
            total_value=money(raw_value),
            weighted_average_cost=unit_cost(wac),
            lots=lines,
            max_age_days=max((line.age_days for line in lines), default=0),
            aging_threshold_days=aging_threshold_days,
        )

    @staticmethod
    def expiry_exposure(
        lots: Sequence[Lot],
        as_of: date,
        horizon_days: int = EXPIRY_HORIZON_DAYS,
    ) -> ExpiryExposure:
        """
        Split stock into expired and expiring-soon quantities.

        Lots without expiry are never at risk.
        """
        total_stock = ZERO
        expired = ZERO
        expiring_soon = ZERO

        for lot in lots:
            if lot.remaining_qty <= 0:
                continue
            total_stock += lot.remaining_qty

            days_left = lot.days_until_expiry(as_of)
            if days_left is None:
                continue
            if days_left < 0:
                expired += lot.remaining_qty
            elif days_left <= horizon_days:
                expiring_soon += lot.remaining_qty

        return ExpiryExposure(
            total_stock=qty(total_stock),
            expired_qty=qty(expired),
            expiring_soon_qty=qty(expiring_soon),
            waste_risk_percent=percent(expired + expiring_soon, total_stock),
        )
