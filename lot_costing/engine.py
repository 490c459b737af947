"""
Costing engine facade.

Entry point for request-handling code. Every call replays the SKU history
from the movement source; nothing is cached or kept between calls. The "as of"
date is always injected by the caller.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from .analytics.profit import HistoricalProfitReplayer, simulate_sale
from .config import CostingSettings
from .domain.allocation import AllocationMode
from .domain.ledger import LedgerBuilder, ReplayResult
from .domain.models import AllocationResult, LotDraw, Movement, ProfitRecord, StockoutForecast
from .domain.valuation import (
    ExpiryExposure,
    MovementStatus,
    Valuation,
    ValuationCalculator,
    classify_movement_status,
)
from .exceptions import SkuNotFoundError
from .forecast import burn_rate, daily_consumption, predict_stockout
from .sources import MovementSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationPreview:
    """What an outbound entry would draw, shown before it is committed."""
    sku: str
    as_of: date
    current_stock: Decimal
    weighted_average_cost: Decimal
    estimated_cogs: Decimal
    allocation: AllocationResult

    @property
    def mode(self) -> AllocationMode:
        return self.allocation.mode

    @property
    def draws(self) -> Tuple[LotDraw, ...]:
        return self.allocation.draws

    @property
    def shortfall(self) -> bool:
        return self.allocation.shortfall

    @property
    def shortfall_qty(self) -> Decimal:
        return self.allocation.shortfall_qty


@dataclass(frozen=True)
class AgingReport:
    """Valuation plus sales velocity signals of one SKU."""
    valuation: Valuation
    last_issue_date: Optional[date]
    days_since_last_issue: Optional[int]
    movement_status: MovementStatus
    expiry: ExpiryExposure

    @property
    def is_aging(self) -> bool:
        return self.valuation.is_aging


class CostingEngine:
    """Replays the movement log to answer costing, valuation and forecast queries."""

    def __init__(self, source: MovementSource, settings: Optional[CostingSettings] = None):
        self.source = source
        self.settings = settings or CostingSettings()

    def _movements(self, sku: str) -> List[Movement]:
        movements = self.source.movements_for(sku)
        if not movements:
            raise SkuNotFoundError(sku)
        return movements

    def replay(self, sku: str, as_of: date) -> ReplayResult:
        """Canonical (oldest-first) ledger of a SKU as of a date."""
        return LedgerBuilder(AllocationMode.OLDEST_FIRST).replay(sku, self._movements(sku), as_of=as_of)

    def preview_allocation(
        self,
        sku: str,
        quantity,
        as_of: date,
        mode=AllocationMode.OLDEST_FIRST,
    ) -> AllocationPreview:
        """
        Dry-run an outbound quantity against the current lots.

        Raises:
            UnsupportedAllocationModeError / InvalidQuantityError: bad request
            SkuNotFoundError: the SKU has no movements at all

        Insufficient stock is not an error: the preview has shortfall=True.
        """
        mode = AllocationMode.parse(mode)
        result = self.replay(sku, as_of)
        lots = result.lots
        simulation = simulate_sale(lots, quantity, 0, mode=mode, as_of=as_of)

        if simulation.allocation.shortfall:
            logger.info(
                f"Preview {sku}: requested {simulation.quantity}, open {result.open_quantity}, "
                f"short {simulation.allocation.shortfall_qty}"
            )
        return AllocationPreview(
            sku=sku,
            as_of=as_of,
            current_stock=result.open_quantity,
            weighted_average_cost=result.ledger.weighted_average_cost(),
            estimated_cogs=simulation.cogs,
            allocation=simulation.allocation,
        )

    def valuation(self, sku: str, as_of: date) -> Valuation:
        result = self.replay(sku, as_of)
        return ValuationCalculator.value(
            sku,
            result.lots,
            as_of,
            aging_threshold_days=self.settings.aging_threshold_days,
        )

    def aging(self, sku: str, as_of: date) -> AgingReport:
        """Valuation, days since last issue, velocity bucket and expiry exposure."""
        result = self.replay(sku, as_of)
        lots = result.lots
        last_issue = result.last_issue_date
        days_since = (as_of - last_issue).days if last_issue else None
        return AgingReport(
            valuation=ValuationCalculator.value(
                sku, lots, as_of, aging_threshold_days=self.settings.aging_threshold_days
            ),
            last_issue_date=last_issue,
            days_since_last_issue=days_since,
            movement_status=classify_movement_status(days_since),
            expiry=ValuationCalculator.expiry_exposure(
                lots, as_of, horizon_days=self.settings.expiry_horizon_days
            ),
        )

    def profit_records(self, as_of: Optional[date] = None) -> List[ProfitRecord]:
        """Per-transaction profit records for every SKU in the log."""
        return HistoricalProfitReplayer().replay(self.source.all_movements(), as_of=as_of)

    def forecast(self, sku: str, as_of: date) -> StockoutForecast:
        """Stockout projection from the trailing consumption window."""
        movements = self._movements(sku)
        stock = LedgerBuilder(AllocationMode.OLDEST_FIRST).replay(sku, movements, as_of=as_of).open_quantity
        window = self.settings.burn_rate_window_days
        series = daily_consumption(
            movements,
            as_of,
            window_days=window,
            include_write_offs=self.settings.include_write_offs_in_burn_rate,
            sku=sku,
        )
        rate = burn_rate(series, window_days=window, exclude_zero_days=self.settings.exclude_zero_days)
        return predict_stockout(
            stock,
            rate,
            as_of,
            sku=sku,
            days_cap=self.settings.no_consumption_days_cap,
            critical_days=self.settings.critical_days,
            high_days=self.settings.high_days,
        )
