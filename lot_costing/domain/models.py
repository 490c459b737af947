"""
Domain models for lot costing.

Pure data classes + value objects. No I/O, no side effects.
Quantities and money are Decimal (see money.py for the rounding policy).
"""
from dataclasses import dataclass, field
from datetime import date as Date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from .money import ZERO, money, to_decimal


class MovementKind(Enum):
    """Movement kinds recorded in the stock log."""
    RECEIPT = "RECEIPT"      # Inbound: opens a new lot
    ISSUE = "ISSUE"          # Outbound sale: consumes lots
    WRITE_OFF = "WRITE_OFF"  # Damage/expiry write-off: consumes lots, no revenue

    @classmethod
    def parse(cls, raw) -> Optional["MovementKind"]:
        """Accept enum members, values and the legacy IN/OUT/DAMAGE labels."""
        if isinstance(raw, cls):
            return raw
        if raw is None:
            return None
        key = str(raw).strip().upper().replace("-", "_")
        return _KIND_ALIASES.get(key)


_KIND_ALIASES = {
    "RECEIPT": MovementKind.RECEIPT,
    "IN": MovementKind.RECEIPT,
    "INBOUND": MovementKind.RECEIPT,
    "ISSUE": MovementKind.ISSUE,
    "OUT": MovementKind.ISSUE,
    "OUTBOUND": MovementKind.ISSUE,
    "SALE": MovementKind.ISSUE,
    "WRITE_OFF": MovementKind.WRITE_OFF,
    "WRITEOFF": MovementKind.WRITE_OFF,
    "DAMAGE": MovementKind.WRITE_OFF,
    "WASTE": MovementKind.WRITE_OFF,
}


class RiskTier(Enum):
    """Stockout risk tier."""
    CRITICAL = "CRITICAL"  # < 7 days of cover
    HIGH = "HIGH"          # < 14 days of cover
    LOW = "LOW"


@dataclass(frozen=True)
class Movement:
    """
    Stock movement - immutable.

    Numeric fields are coerced to Decimal; unparsable values become None and
    the movement is rejected by validation during replay instead of raising
    here, so one bad row can't stop the rest of the history from loading.
    """
    sku: str
    date: Date
    kind: Optional[MovementKind]
    quantity: Optional[Decimal]
    unit_cost: Optional[Decimal] = None    # RECEIPT
    unit_price: Optional[Decimal] = None   # ISSUE
    document_ref: str = ""
    batch_id: Optional[str] = None
    expiry_date: Optional[Date] = None
    sequence: Optional[int] = None         # Position in the original log

    def __post_init__(self):
        if isinstance(self.date, datetime):
            object.__setattr__(self, "date", self.date.date())
        if isinstance(self.expiry_date, datetime):
            object.__setattr__(self, "expiry_date", self.expiry_date.date())
        object.__setattr__(self, "kind", MovementKind.parse(self.kind))
        object.__setattr__(self, "quantity", to_decimal(self.quantity))
        object.__setattr__(self, "unit_cost", to_decimal(self.unit_cost))
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))

    @property
    def is_receipt(self) -> bool:
        return self.kind == MovementKind.RECEIPT

    @property
    def is_outbound(self) -> bool:
        return self.kind in (MovementKind.ISSUE, MovementKind.WRITE_OFF)

    @property
    def revenue(self) -> Decimal:
        """Sale revenue (quantity x unit price). Write-offs earn nothing."""
        if self.kind != MovementKind.ISSUE or self.quantity is None:
            return money(ZERO)
        return money(self.quantity * (self.unit_price or ZERO))


@dataclass
class Lot:
    """
    Open receipt lot.

    Owned by a single SKU ledger. remaining_qty only ever decreases.
    """
    lot_id: str
    sku: str
    receipt_date: Date
    original_qty: Decimal
    remaining_qty: Decimal
    unit_cost: Decimal
    expiry_date: Optional[Date] = None
    document_ref: str = ""
    batch_id: Optional[str] = None
    sequence: int = 0  # Insertion order within the ledger

    def __post_init__(self):
        if self.remaining_qty < 0:
            raise ValueError("Lot quantity cannot be negative")
        if self.remaining_qty > self.original_qty:
            raise ValueError("Lot remaining quantity cannot exceed original quantity")

    @property
    def value(self) -> Decimal:
        """Unrounded value of the remaining quantity."""
        return self.remaining_qty * self.unit_cost

    @property
    def is_exhausted(self) -> bool:
        return self.remaining_qty <= 0

    def age_days(self, as_of: Date) -> int:
        """Days since receipt as of the given date (never negative)."""
        return max(0, (as_of - self.receipt_date).days)

    def days_until_expiry(self, as_of: Date) -> Optional[int]:
        """Days until expiry from as_of (None if no expiry)."""
        if self.expiry_date is None:
            return None
        return (self.expiry_date - as_of).days

    def is_expired(self, as_of: Date) -> bool:
        if self.expiry_date is None:
            return False
        return as_of > self.expiry_date


@dataclass(frozen=True)
class LotDraw:
    """Quantity drawn from one lot by an allocation."""
    lot_id: str
    quantity: Decimal
    unit_cost: Decimal
    age_days: int
    receipt_date: Date
    expiry_date: Optional[Date] = None
    batch_id: Optional[str] = None

    @property
    def cost(self) -> Decimal:
        return self.quantity * self.unit_cost


@dataclass(frozen=True)
class AllocationResult:
    """Ordered lot draws covering a requested quantity."""
    mode: "object"  # AllocationMode (kept loose to avoid a circular import)
    requested_qty: Decimal
    draws: Tuple[LotDraw, ...] = ()
    shortfall_qty: Decimal = ZERO
    applied: bool = False

    @property
    def shortfall(self) -> bool:
        return self.shortfall_qty > 0

    @property
    def allocated_qty(self) -> Decimal:
        return sum((d.quantity for d in self.draws), ZERO)

    @property
    def lot_cost(self) -> Decimal:
        """Unrounded cost of the quantity actually drawn from lots."""
        return sum((d.cost for d in self.draws), ZERO)


@dataclass(frozen=True)
class ProfitRecord:
    """Realized cost and profit of one outbound movement."""
    movement: Movement
    cogs: Decimal
    revenue: Decimal
    profit: Decimal
    margin: Decimal                  # Percent of revenue, 0 when revenue is 0
    draws: Tuple[LotDraw, ...] = ()
    shortfall_qty: Decimal = ZERO
    shortfall_cost: Decimal = ZERO
    uncosted: bool = False           # Shortfall with no known cost basis

    @property
    def sku(self) -> str:
        return self.movement.sku

    @property
    def date(self) -> Date:
        return self.movement.date

    @property
    def is_write_off(self) -> bool:
        return self.movement.kind == MovementKind.WRITE_OFF


@dataclass(frozen=True)
class StockoutForecast:
    """Projected stockout for a SKU."""
    sku: str
    current_stock: Decimal
    average_daily_consumption: Decimal
    days_remaining: int
    projected_date: Optional[Date]
    risk_tier: RiskTier
    no_consumption: bool = False


@dataclass(frozen=True)
class SkippedMovement:
    """Movement rejected during replay because of a data-quality problem."""
    movement: Movement
    reason: str
    index: int = field(default=-1)
