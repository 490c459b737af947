"""
Lot allocation policy: FIFO (oldest received first) and FEFO (soonest expiry first).

A single function serves the operator preview (apply=False) and the replay
step that deducts from the ledger (apply=True), so the two can't drift apart.
"""
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ..exceptions import InvalidQuantityError, UnsupportedAllocationModeError
from .models import AllocationResult, Lot, LotDraw
from .money import to_decimal
from .validation import validate_quantity


class AllocationMode(Enum):
    """Consumption order for outbound quantities."""
    OLDEST_FIRST = "FIFO"
    SOONEST_EXPIRY_FIRST = "FEFO"

    @classmethod
    def parse(cls, raw) -> "AllocationMode":
        """
        Resolve a mode from an enum member, its value ("FIFO"/"FEFO") or its name.

        Raises:
            UnsupportedAllocationModeError: If the mode is not supported
        """
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            key = raw.strip().upper()
            for mode in cls:
                if key in (mode.value, mode.name):
                    return mode
        raise UnsupportedAllocationModeError(
            f"Unsupported allocation mode: {raw!r} (expected one of "
            f"{', '.join(m.value for m in cls)})"
        )


def consumption_order(lots: Sequence[Lot], mode: AllocationMode) -> List[Lot]:
    """
    Return a working copy of the lots in the order the mode consumes them.

    The input sequence is never re-ordered.
    """
    if mode == AllocationMode.SOONEST_EXPIRY_FIRST:
        return sorted(
            lots,
            key=lambda lot: (
                lot.expiry_date is None,
                lot.expiry_date or date.max,
                lot.receipt_date,
                lot.sequence,
            ),
        )
    return sorted(lots, key=lambda lot: (lot.receipt_date, lot.sequence))


def allocate(
    lots: Sequence[Lot],
    quantity,
    mode=AllocationMode.OLDEST_FIRST,
    *,
    apply: bool = False,
    as_of: Optional[date] = None,
) -> AllocationResult:
    """
    Split a requested quantity across open lots.

    Quantity taken from each lot is min(lot remaining, unsatisfied request),
    walking lots in policy order until the request is met or lots run out.

    Args:
        lots: Canonical lot queue of one SKU. Must be a list when apply=True.
        quantity: Requested outbound quantity (>= 0)
        mode: AllocationMode or its value ("FIFO" / "FEFO")
        apply: False = dry run (nothing changes); True = deduct the draws from
               the lots and drop exhausted lots from the list in place
        as_of: Reference date for lot ages (ages are 0 when omitted)

    Returns:
        AllocationResult with ordered draws and the unsatisfied remainder

    Raises:
        UnsupportedAllocationModeError: Unknown mode
        InvalidQuantityError: Negative or non-numeric quantity
    """
    mode = AllocationMode.parse(mode)
    is_valid, error = validate_quantity(quantity, allow_zero=True)
    if not is_valid:
        raise InvalidQuantityError(error)
    if apply and not isinstance(lots, list):
        raise TypeError("apply=True requires the ledger's lot list")

    requested = to_decimal(quantity)
    unsatisfied = requested
    plan: List[Tuple[Lot, Decimal]] = []

    for lot in consumption_order(lots, mode):
        if unsatisfied <= 0:
            break
        if lot.remaining_qty <= 0:
            continue
        take = min(lot.remaining_qty, unsatisfied)
        plan.append((lot, take))
        unsatisfied -= take

    draws = tuple(
        LotDraw(
            lot_id=lot.lot_id,
            quantity=take,
            unit_cost=lot.unit_cost,
            age_days=lot.age_days(as_of) if as_of else 0,
            receipt_date=lot.receipt_date,
            expiry_date=lot.expiry_date,
            batch_id=lot.batch_id,
        )
        for lot, take in plan
    )

    if apply:
        for lot, take in plan:
            lot.remaining_qty -= take
        lots[:] = [lot for lot in lots if not lot.is_exhausted]

    return AllocationResult(
        mode=mode,
        requested_qty=requested,
        draws=draws,
        shortfall_qty=unsatisfied,
        applied=apply,
    )
