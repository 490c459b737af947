"""
lot_costing - inventory costing and valuation engine.

Rebuilds per-SKU receipt lots from the movement log and uses them for
FIFO/FEFO allocation previews, valuation, realized profit and stockout
forecasts. Pure computation: no I/O, no state kept between calls.
"""

from .config import CostingSettings, load_settings
from .domain.allocation import AllocationMode, allocate
from .domain.ledger import LedgerBuilder, LotLedger, ReplayResult
from .domain.models import (
    AllocationResult,
    Lot,
    LotDraw,
    Movement,
    MovementKind,
    ProfitRecord,
    RiskTier,
    StockoutForecast,
)
from .domain.valuation import Valuation, ValuationCalculator
from .engine import AllocationPreview, CostingEngine
from .exceptions import (
    CostingError,
    InvalidQuantityError,
    LedgerInvariantError,
    SkuNotFoundError,
    UnsupportedAllocationModeError,
)
from .forecast import burn_rate, predict_stockout
from .sources import InMemoryMovementSource, MovementSource

__version__ = "1.0.0"

__all__ = [
    "AllocationMode",
    "AllocationPreview",
    "AllocationResult",
    "CostingEngine",
    "CostingError",
    "CostingSettings",
    "InMemoryMovementSource",
    "InvalidQuantityError",
    "LedgerBuilder",
    "LedgerInvariantError",
    "Lot",
    "LotDraw",
    "LotLedger",
    "Movement",
    "MovementKind",
    "MovementSource",
    "ProfitRecord",
    "ReplayResult",
    "RiskTier",
    "SkuNotFoundError",
    "StockoutForecast",
    "UnsupportedAllocationModeError",
    "Valuation",
    "ValuationCalculator",
    "allocate",
    "burn_rate",
    "load_settings",
    "predict_stockout",
]
