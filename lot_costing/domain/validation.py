"""
Centralized validation rules for movements and requests.

Functions return (is_valid, error_message) so callers decide whether a failure
is a skipped data row or a rejected call.
"""
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from .models import Movement, MovementKind
from .money import to_decimal


# Largest accepted quantity and per-unit amount. Their product still fits the
# 28-digit decimal context at cent precision.
MAX_QUANTITY = Decimal("1000000000000")
MAX_UNIT_AMOUNT = Decimal("1000000000000")


def validate_quantity(value, allow_zero: bool = False) -> Tuple[bool, str]:
    """
    Validate a quantity value.

    Args:
        value: Quantity to validate (any numeric-like input)
        allow_zero: Whether zero is accepted

    Returns:
        (is_valid, error_message)
    """
    qty = to_decimal(value)
    if qty is None:
        return False, f"Quantity must be a number, got: {value!r}"
    if qty < 0:
        return False, f"Quantity cannot be negative, got: {qty}"
    if qty == 0 and not allow_zero:
        return False, "Quantity must be greater than zero"
    if qty > MAX_QUANTITY:
        return False, f"Quantity exceeds the maximum of {MAX_QUANTITY}, got: {qty}"
    return True, ""


def validate_movement(movement: Movement, sku: Optional[str] = None) -> Tuple[bool, str]:
    """
    Validate a movement before it is replayed.

    Args:
        movement: Movement to check
        sku: Expected SKU (rows for another SKU are rejected)

    Returns:
        (is_valid, error_message)
    """
    if sku is not None and movement.sku != sku:
        return False, f"Movement belongs to {movement.sku!r}, not {sku!r}"

    if not isinstance(movement.date, date):
        return False, f"Movement date is missing or invalid: {movement.date!r}"

    if movement.kind is None:
        return False, "Movement kind is missing or unknown"

    if movement.quantity is None:
        return False, "Quantity is missing or not a number"
    if movement.quantity <= 0:
        return False, f"Quantity must be positive, got: {movement.quantity}"
    if movement.quantity > MAX_QUANTITY:
        return False, f"Quantity exceeds the maximum of {MAX_QUANTITY}, got: {movement.quantity}"

    if movement.kind == MovementKind.RECEIPT:
        if movement.unit_cost is None:
            return False, "Receipt is missing its unit cost"
        if movement.unit_cost < 0:
            return False, f"Receipt unit cost cannot be negative, got: {movement.unit_cost}"
        if movement.unit_cost > MAX_UNIT_AMOUNT:
            return False, f"Receipt unit cost exceeds the maximum of {MAX_UNIT_AMOUNT}, got: {movement.unit_cost}"

    if movement.kind == MovementKind.ISSUE and movement.unit_price is not None:
        if movement.unit_price < Decimal("0"):
            return False, f"Issue unit price cannot be negative, got: {movement.unit_price}"
        if movement.unit_price > MAX_UNIT_AMOUNT:
            return False, f"Issue unit price exceeds the maximum of {MAX_UNIT_AMOUNT}, got: {movement.unit_price}"

    return True, ""
