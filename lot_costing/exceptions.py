"""
Exceptions raised by the costing engine.

Data-quality problems in the movement log are never raised: they are recorded
as skipped movements during replay. Insufficient stock is a flag on the
allocation result, not an exception.
"""


class CostingError(Exception):
    """Base exception for costing engine errors"""
    pass


class UnsupportedAllocationModeError(CostingError, ValueError):
    """Raised when an allocation mode is not one of the supported policies"""
    pass


class InvalidQuantityError(CostingError, ValueError):
    """Raised when a requested quantity is negative or not a number"""
    pass


class SkuNotFoundError(CostingError, LookupError):
    """Raised when the event source has no movements for a SKU"""

    def __init__(self, sku: str):
        super().__init__(f"SKU not found: {sku}")
        self.sku = sku


class LedgerInvariantError(CostingError):
    """Raised when replay leaves a ledger in an inconsistent state"""
    pass
