"""
Historical profit replay.

Replays the complete movement history of every SKU with the oldest-first
policy, from empty state, and emits one ProfitRecord per issue/write-off using
the lot costs consumed at that point of the replay. Nothing is cached between
calls, so records always match the log they were computed from.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from ..domain.allocation import AllocationMode, allocate
from ..domain.ledger import AppliedMovement, LedgerBuilder, ReplayResult
from ..domain.models import AllocationResult, Lot, Movement, ProfitRecord
from ..domain.money import ZERO, money, percent, to_decimal, unit_cost

logger = logging.getLogger(__name__)


def group_by_sku(movements: Iterable[Movement]) -> "OrderedDict[str, List[Movement]]":
    """Group movements per SKU, keeping log order inside each group."""
    groups: "OrderedDict[str, List[Movement]]" = OrderedDict()
    for movement in movements:
        groups.setdefault(movement.sku, []).append(movement)
    return groups


def profit_record(applied: AppliedMovement) -> ProfitRecord:
    """Build the profit record of one applied outbound movement."""
    cogs = applied.cogs
    revenue = applied.movement.revenue
    profit = money(revenue - cogs)
    return ProfitRecord(
        movement=applied.movement,
        cogs=cogs,
        revenue=revenue,
        profit=profit,
        margin=percent(profit, revenue),
        draws=applied.allocation.draws,
        shortfall_qty=applied.allocation.shortfall_qty,
        shortfall_cost=money(applied.shortfall_cost),
        uncosted=applied.uncosted,
    )


class HistoricalProfitReplayer:
    """Per-transaction COGS / profit from a full oldest-first replay."""

    def __init__(self, check_invariants: bool = True):
        self.builder = LedgerBuilder(AllocationMode.OLDEST_FIRST, check_invariants=check_invariants)

    def replay_sku(self, sku: str, movements: Sequence[Movement], as_of: Optional[date] = None) -> ReplayResult:
        return self.builder.replay(sku, movements, as_of=as_of)

    def replay(self, movements: Iterable[Movement], as_of: Optional[date] = None) -> List[ProfitRecord]:
        """
        Compute profit records for all SKUs.

        Args:
            movements: All movements of all SKUs (any SKU interleaving)
            as_of: Optional cutoff date (inclusive)

        Returns:
            Profit records, SKUs in sorted order, each SKU in replay order
        """
        groups = group_by_sku(movements)
        records: List[ProfitRecord] = []
        skipped = 0
        for sku in sorted(groups, key=str):
            result = self.replay_sku(sku, groups[sku], as_of=as_of)
            skipped += result.skipped_count
            records.extend(profit_record(applied) for applied in result.applied)

        logger.debug(f"Profit replay: {len(groups)} SKUs, {len(records)} records, {skipped} skipped movements")
        return records


@dataclass(frozen=True)
class SaleSimulation:
    """Projected profit of a hypothetical sale. Nothing is deducted."""
    quantity: Decimal
    unit_price: Decimal
    revenue: Decimal
    cogs: Decimal
    profit: Decimal
    margin: Decimal
    allocation: AllocationResult

    @property
    def is_stockout_risk(self) -> bool:
        return self.allocation.shortfall


def simulate_sale(
    lots: Sequence[Lot],
    quantity,
    price,
    mode=AllocationMode.OLDEST_FIRST,
    as_of: Optional[date] = None,
) -> SaleSimulation:
    """
    Cost a hypothetical sale against the current lots without changing them.

    Units the lots can't cover are charged at the lots' weighted-average cost,
    the same fallback the replay applies to real shortfalls.
    """
    allocation = allocate(lots, quantity, mode, apply=False, as_of=as_of)

    open_qty = sum((lot.remaining_qty for lot in lots), ZERO)
    open_value = sum((lot.value for lot in lots), ZERO)
    wac = unit_cost(open_value / open_qty) if open_qty > 0 else unit_cost(ZERO)

    price = to_decimal(price) or ZERO
    cogs = money(allocation.lot_cost + allocation.shortfall_qty * wac)
    revenue = money(allocation.requested_qty * price)
    profit = money(revenue - cogs)
    return SaleSimulation(
        quantity=allocation.requested_qty,
        unit_price=price,
        revenue=revenue,
        cogs=cogs,
        profit=profit,
        margin=percent(profit, revenue),
        allocation=allocation,
    )


@dataclass(frozen=True)
class ProfitSummary:
    """Totals over a set of profit records."""
    revenue: Decimal
    cogs: Decimal
    profit: Decimal
    margin: Decimal
    write_off_cost: Decimal
    profit_by_sku: Dict[str, Decimal] = field(default_factory=dict)

    def top_skus(self, limit: int = 5) -> List[tuple]:
        """SKUs with the highest profit, best first."""
        ranked = sorted(self.profit_by_sku.items(), key=lambda item: (-item[1], item[0]))
        return ranked[:limit]


def summarize_profit(records: Iterable[ProfitRecord]) -> ProfitSummary:
    """Add up revenue, COGS and profit over profit records."""
    revenue = ZERO
    cogs = ZERO
    write_off_cost = ZERO
    by_sku: Dict[str, Decimal] = {}

    for record in records:
        revenue += record.revenue
        cogs += record.cogs
        if record.is_write_off:
            write_off_cost += record.cogs
        by_sku[record.sku] = by_sku.get(record.sku, ZERO) + record.profit

    profit = revenue - cogs
    return ProfitSummary(
        revenue=money(revenue),
        cogs=money(cogs),
        profit=money(profit),
        margin=percent(profit, revenue),
        write_off_cost=money(write_off_cost),
        profit_by_sku={sku: money(value) for sku, value in by_sku.items()},
    )
