"""
Fixed-point helpers for quantities and money.

All costing arithmetic runs on Decimal. Rounding policy is ROUND_HALF_UP:
- money totals (COGS, revenue, profit, stock value): 2 places
- unit costs and weighted-average cost: 4 places
- quantities: 4 places
- percentages (margin): 2 places
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional


ZERO = Decimal("0")
ONE_HUNDRED = Decimal("100")

MONEY_QUANT = Decimal("0.01")
UNIT_COST_QUANT = Decimal("0.0001")
QTY_QUANT = Decimal("0.0001")
PERCENT_QUANT = Decimal("0.01")

# Thousands-grouped numbers only: "1,234", "-1,234,567.89"
_THOUSANDS_RE = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d*)?$")


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Coerce a raw value to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary
    expansion. Commas are accepted only as thousands separators. Returns None
    for None, empty strings and unparsable input.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        if "," in value:
            if not _THOUSANDS_RE.match(value):
                return None
            value = value.replace(",", "")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    return result if result.is_finite() else None


def money(value) -> Decimal:
    """Round to the money minor unit (0.01), half-up."""
    return (to_decimal(value) or ZERO).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def unit_cost(value) -> Decimal:
    """Round a per-unit cost to 4 places, half-up."""
    return (to_decimal(value) or ZERO).quantize(UNIT_COST_QUANT, rounding=ROUND_HALF_UP)


def qty(value) -> Decimal:
    """Round a quantity to 4 places, half-up."""
    return (to_decimal(value) or ZERO).quantize(QTY_QUANT, rounding=ROUND_HALF_UP)


def percent(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator * 100, rounded to 0.01. Zero denominator -> 0.00."""
    if not denominator:
        return ZERO.quantize(PERCENT_QUANT)
    return (numerator / denominator * ONE_HUNDRED).quantize(PERCENT_QUANT, rounding=ROUND_HALF_UP)
