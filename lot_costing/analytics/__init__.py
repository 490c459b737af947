"""Analytics package for realized profit."""

from .profit import (
    HistoricalProfitReplayer,
    ProfitSummary,
    SaleSimulation,
    group_by_sku,
    profit_record,
    simulate_sale,
    summarize_profit,
)

__all__ = [
    "HistoricalProfitReplayer",
    "ProfitSummary",
    "SaleSimulation",
    "group_by_sku",
    "profit_record",
    "simulate_sale",
    "summarize_profit",
]
