"""
Lot ledger engine (replay logic).

Core ledger processing: deterministic, testable, no I/O.
The movement log is the only source of truth; lots are rebuilt from scratch
on every replay and discarded afterwards.
"""
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from ..exceptions import LedgerInvariantError
from .allocation import AllocationMode, allocate
from .models import AllocationResult, Lot, Movement, MovementKind, SkippedMovement
from .money import ZERO, money, unit_cost
from .validation import validate_movement

logger = logging.getLogger(__name__)


def sort_movements(movements: Iterable[Movement]) -> List[Movement]:
    """
    Sort movements chronologically without reordering same-day ties.

    Key: (date, log sequence, arrival index). Movements without a sequence
    keep the order they were supplied in.
    """
    indexed = list(enumerate(movements))
    indexed.sort(
        key=lambda pair: (
            pair[1].date,
            pair[1].sequence if pair[1].sequence is not None else pair[0],
            pair[0],
        )
    )
    return [m for _, m in indexed]


@dataclass(frozen=True)
class AppliedMovement:
    """Outcome of one issue/write-off applied to the ledger."""
    movement: Movement
    allocation: AllocationResult
    average_cost_before: Decimal          # Queue WAC just before the deduction
    shortfall_unit_cost: Decimal = ZERO   # Cost charged per unsatisfied unit
    uncosted: bool = False                # Shortfall with no cost basis at all

    @property
    def is_write_off(self) -> bool:
        return self.movement.kind == MovementKind.WRITE_OFF

    @property
    def shortfall_cost(self) -> Decimal:
        return self.allocation.shortfall_qty * self.shortfall_unit_cost

    @property
    def cogs(self) -> Decimal:
        """Lot cost + shortfall charge, rounded to the money unit."""
        return money(self.allocation.lot_cost + self.shortfall_cost)


class LotLedger:
    """
    Canonical lot queue of one SKU.

    Lots are kept in receipt order. Alternative consumption orders (FEFO) are
    computed on a working copy by the allocation policy.
    """

    def __init__(self, sku: str, check_invariants: bool = True):
        self.sku = sku
        self.lots: List[Lot] = []
        self.total_received = ZERO
        self.total_consumed = ZERO
        self.total_shortfall = ZERO
        self.last_unit_cost: Optional[Decimal] = None
        self.check_invariants = check_invariants
        self._receipts = 0

    @property
    def open_quantity(self) -> Decimal:
        return sum((lot.remaining_qty for lot in self.lots), ZERO)

    @property
    def open_value(self) -> Decimal:
        return sum((lot.value for lot in self.lots), ZERO)

    def weighted_average_cost(self) -> Decimal:
        """Current queue WAC rounded to the unit-cost precision (0 if empty)."""
        stock = self.open_quantity
        if stock <= 0:
            return unit_cost(ZERO)
        return unit_cost(self.open_value / stock)

    def receive(self, movement: Movement) -> Lot:
        """Append a new lot for a receipt movement."""
        self._receipts += 1
        lot = Lot(
            lot_id=f"{self.sku}/{self._receipts}",
            sku=self.sku,
            receipt_date=movement.date,
            original_qty=movement.quantity,
            remaining_qty=movement.quantity,
            unit_cost=movement.unit_cost,
            expiry_date=movement.expiry_date,
            document_ref=movement.document_ref,
            batch_id=movement.batch_id,
            sequence=self._receipts,
        )
        self.lots.append(lot)
        self.total_received += movement.quantity
        self.last_unit_cost = movement.unit_cost
        self._verify()
        return lot

    def issue(self, movement: Movement, mode=AllocationMode.OLDEST_FIRST) -> AppliedMovement:
        """
        Consume lots for an issue or write-off movement.

        When open lots can't cover the movement, everything is consumed and the
        remainder is charged at the queue's WAC at that moment. If the queue was
        already empty the last receipt cost is used instead.
        """
        had_stock = self.open_quantity > 0
        wac_before = self.weighted_average_cost()

        allocation = allocate(
            self.lots,
            movement.quantity,
            mode,
            apply=True,
            as_of=movement.date,
        )
        self.total_consumed += allocation.allocated_qty

        shortfall_unit_cost = ZERO
        uncosted = False
        if allocation.shortfall:
            self.total_shortfall += allocation.shortfall_qty
            if had_stock:
                shortfall_unit_cost = wac_before
            elif self.last_unit_cost is not None:
                shortfall_unit_cost = unit_cost(self.last_unit_cost)
            else:
                uncosted = True
            logger.warning(
                f"Shortfall on {self.sku} {movement.document_ref or ''} ({movement.date}): "
                f"requested {movement.quantity}, short {allocation.shortfall_qty}, "
                f"charged at {shortfall_unit_cost}{' (uncosted)' if uncosted else ''}"
            )

        self._verify()
        return AppliedMovement(
            movement=movement,
            allocation=allocation,
            average_cost_before=wac_before,
            shortfall_unit_cost=shortfall_unit_cost,
            uncosted=uncosted,
        )

    def snapshot(self) -> Tuple[Lot, ...]:
        """Independent copies of the open lots (canonical order)."""
        return tuple(replace(lot) for lot in self.lots)

    def _verify(self) -> None:
        if self.check_invariants:
            self.verify_invariants()

    def verify_invariants(self) -> None:
        """
        Check ledger consistency.

        Raises:
            LedgerInvariantError: open qty != received - consumed, a negative
                lot, or lots out of receipt-date order
        """
        expected = self.total_received - self.total_consumed
        if self.open_quantity != expected:
            raise LedgerInvariantError(
                f"{self.sku}: open quantity {self.open_quantity} != "
                f"received {self.total_received} - consumed {self.total_consumed}"
            )
        previous: Optional[date] = None
        for lot in self.lots:
            if lot.remaining_qty < 0:
                raise LedgerInvariantError(f"{self.sku}: lot {lot.lot_id} has negative quantity")
            if previous is not None and lot.receipt_date < previous:
                raise LedgerInvariantError(
                    f"{self.sku}: lot {lot.lot_id} received {lot.receipt_date} "
                    f"after a lot received {previous}"
                )
            previous = lot.receipt_date


@dataclass
class ReplayResult:
    """Final ledger state plus the per-movement trail of one SKU replay."""
    sku: str
    ledger: LotLedger
    applied: List[AppliedMovement] = field(default_factory=list)
    skipped: List[SkippedMovement] = field(default_factory=list)

    @property
    def lots(self) -> Tuple[Lot, ...]:
        return self.ledger.snapshot()

    @property
    def open_quantity(self) -> Decimal:
        return self.ledger.open_quantity

    @property
    def total_received(self) -> Decimal:
        return self.ledger.total_received

    @property
    def total_consumed(self) -> Decimal:
        return self.ledger.total_consumed

    @property
    def total_shortfall(self) -> Decimal:
        return self.ledger.total_shortfall

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def shortfall_count(self) -> int:
        return sum(1 for a in self.applied if a.allocation.shortfall)

    @property
    def last_issue_date(self) -> Optional[date]:
        issues = [a.movement.date for a in self.applied if a.movement.kind == MovementKind.ISSUE]
        return max(issues) if issues else None


class LedgerBuilder:
    """
    Replays a SKU's movement history into its open lot queue.

    Rule: movements are applied in (date, log order). Malformed movements are
    skipped and recorded; they never abort the rest of the replay.
    """

    def __init__(self, mode=AllocationMode.OLDEST_FIRST, check_invariants: bool = True):
        self.mode = AllocationMode.parse(mode)
        self.check_invariants = check_invariants

    def replay(
        self,
        sku: str,
        movements: Iterable[Movement],
        as_of: Optional[date] = None,
    ) -> ReplayResult:
        """
        Rebuild the ledger of one SKU from empty state.

        Args:
            sku: SKU identifier
            movements: Complete movement history of the SKU
            as_of: Optional cutoff; only movements dated on or before it apply

        Returns:
            ReplayResult with final lots, applied outbound movements and skips
        """
        ledger = LotLedger(sku, check_invariants=self.check_invariants)
        result = ReplayResult(sku=sku, ledger=ledger)

        valid: List[Movement] = []
        for index, movement in enumerate(movements):
            is_valid, reason = validate_movement(movement, sku=sku)
            if not is_valid:
                result.skipped.append(SkippedMovement(movement=movement, reason=reason, index=index))
                logger.warning(f"Skipping movement #{index} for {sku} ({movement.document_ref!r}): {reason}")
                continue
            valid.append(movement)

        for movement in sort_movements(valid):
            if as_of is not None and movement.date > as_of:
                continue
            if movement.is_receipt:
                ledger.receive(movement)
            else:
                result.applied.append(ledger.issue(movement, self.mode))

        logger.debug(
            f"Replayed {sku}: {len(result.applied)} outbound, {len(result.skipped)} skipped, "
            f"{len(ledger.lots)} open lots, open qty {ledger.open_quantity}"
        )
        return result
