"""
Movement sources: the read side of the external movement log.

The engine only reads complete, per-SKU batches. Any source that is fetched
concurrently must assemble the full batch before handing it to replay.
"""
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol

from .domain.models import Movement, MovementKind


class MovementSource(Protocol):
    """Read-only access to the movement log."""

    def skus(self) -> List[str]:
        ...

    def movements_for(self, sku: str) -> List[Movement]:
        ...

    def all_movements(self) -> List[Movement]:
        ...


def _parse_date(raw: Any) -> Optional[date]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw).strip()[:10])
    except ValueError:
        return None


def movement_from_record(record: Dict[str, Any], sequence: Optional[int] = None) -> Movement:
    """
    Build a Movement from a raw log row.

    Accepts either explicit unit_cost / unit_price columns or a single "price"
    column, read as cost on receipts and as selling price on issues. Bad
    values are kept as None so replay can skip the row and count it.
    """
    kind = MovementKind.parse(record.get("kind", record.get("type")))
    price = record.get("price")
    unit_cost = record.get("unit_cost")
    unit_price = record.get("unit_price")
    if kind == MovementKind.RECEIPT and unit_cost is None:
        unit_cost = price
    if kind == MovementKind.ISSUE and unit_price is None:
        unit_price = price

    sku = record.get("sku", record.get("product"))
    return Movement(
        sku=str(sku).strip() if sku is not None else "",
        date=_parse_date(record.get("date")),
        kind=kind,
        quantity=record.get("quantity", record.get("qty")),
        unit_cost=unit_cost,
        unit_price=unit_price,
        document_ref=str(record.get("document_ref", record.get("doc_ref", "")) or ""),
        batch_id=record.get("batch_id") or None,
        expiry_date=_parse_date(record.get("expiry_date")),
        sequence=sequence,
    )


class InMemoryMovementSource:
    """Movement log held in memory, in log order."""

    def __init__(self, movements: Iterable[Movement] = ()):
        self._movements: List[Movement] = list(movements)

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "InMemoryMovementSource":
        """Load raw rows; the row position becomes the movement's log sequence."""
        return cls(movement_from_record(record, sequence=i) for i, record in enumerate(records))

    def append(self, movement: Movement) -> None:
        self._movements.append(movement)

    def skus(self) -> List[str]:
        return sorted({m.sku for m in self._movements if m.sku})

    def movements_for(self, sku: str) -> List[Movement]:
        return [m for m in self._movements if m.sku == sku]

    def all_movements(self) -> List[Movement]:
        return list(self._movements)

    def __len__(self) -> int:
        return len(self._movements)
