"""
Error UX & messaging.

Turns engine exceptions and soft business conditions into user-friendly
messages with recovery guidance. "Insufficient stock" and "SKU not found" get
distinct codes because operators act differently on each.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from ..exceptions import (
    CostingError,
    InvalidQuantityError,
    LedgerInvariantError,
    SkuNotFoundError,
    UnsupportedAllocationModeError,
)


class ErrorSeverity(Enum):
    """Error severity classification for UI presentation."""

    INFO = "info"           # Informational (no action needed)
    WARNING = "warning"     # Caution (optional action)
    ERROR = "error"         # Error (action required)
    CRITICAL = "critical"   # Internal consistency problem


@dataclass
class ErrorContext:
    """
    Structured error context for user-friendly messaging.

    Attributes:
        message: User-friendly description
        severity: Severity level
        technical_details: Technical info (for logs/debugging)
        context: Additional context (SKU, quantities, operation)
        recovery_steps: Actions the user can take
        error_code: Code for support/documentation
    """
    message: str
    severity: ErrorSeverity
    technical_details: str
    context: Dict[str, Any]
    recovery_steps: List[str]
    error_code: Optional[str] = None

    def format_for_display(self, include_technical: bool = False) -> str:
        """Format for a message box or API error body."""
        lines = [self.message]

        if self.context:
            lines.append("")
            lines.append("Details:")
            for key, value in self.context.items():
                if value is not None:
                    lines.append(f"  • {key}: {value}")

        if self.recovery_steps:
            lines.append("")
            lines.append("Suggested actions:")
            for i, step in enumerate(self.recovery_steps, 1):
                lines.append(f"  {i}. {step}")

        if include_technical and self.technical_details:
            lines.append("")
            lines.append("Technical details:")
            lines.append(f"  {self.technical_details}")

        if self.error_code:
            lines.append("")
            lines.append(f"Error code: {self.error_code}")

        return "\n".join(lines)

    def format_for_log(self) -> str:
        """Format for structured logging."""
        context_str = ", ".join(f"{k}={v}" for k, v in self.context.items() if v is not None)
        return f"[{self.severity.value.upper()}] {self.message} | Context: {context_str} | Technical: {self.technical_details}"


class ErrorFormatter:
    """Maps engine exceptions and outcomes to ErrorContext objects."""

    @staticmethod
    def format_exception(
        exc: Exception,
        operation: str,
        sku: Optional[str] = None,
        additional_context: Optional[Dict[str, Any]] = None,
    ) -> ErrorContext:
        """
        Format an exception raised by an engine call.

        Args:
            exc: The exception raised
            operation: Operation that failed (e.g. "preview_allocation")
            sku: SKU involved (if applicable)
            additional_context: Extra context data

        Returns:
            ErrorContext with message and recovery steps
        """
        context: Dict[str, Any] = {"Operation": operation}
        if sku:
            context["SKU"] = sku
        if additional_context:
            context.update(additional_context)
        technical = f"{type(exc).__name__}: {exc}"

        if isinstance(exc, SkuNotFoundError):
            context.setdefault("SKU", exc.sku)
            return ErrorContext(
                message=f"SKU not found: {exc.sku}",
                severity=ErrorSeverity.WARNING,
                technical_details=technical,
                context=context,
                recovery_steps=[
                    "Check the SKU code for typos",
                    "Record a receipt for this SKU before issuing it",
                ],
                error_code="SKU_404",
            )

        elif isinstance(exc, UnsupportedAllocationModeError):
            return ErrorContext(
                message="Unsupported allocation method",
                severity=ErrorSeverity.ERROR,
                technical_details=technical,
                context=context,
                recovery_steps=["Use FIFO (oldest received first) or FEFO (soonest expiry first)"],
                error_code="ALLOC_MODE",
            )

        elif isinstance(exc, InvalidQuantityError):
            return ErrorContext(
                message="Invalid quantity",
                severity=ErrorSeverity.ERROR,
                technical_details=technical,
                context=context,
                recovery_steps=["Enter a number greater than or equal to zero"],
                error_code="VAL_001",
            )

        elif isinstance(exc, LedgerInvariantError):
            return ErrorContext(
                message="Stock ledger is inconsistent",
                severity=ErrorSeverity.CRITICAL,
                technical_details=technical,
                context=context,
                recovery_steps=[
                    "Do not commit outbound movements for this SKU",
                    "Export the movement history and contact support",
                ],
                error_code="LEDGER_001",
            )

        elif isinstance(exc, CostingError):
            return ErrorContext(
                message=f"Costing error during {operation}",
                severity=ErrorSeverity.ERROR,
                technical_details=technical,
                context=context,
                recovery_steps=["Retry the operation", "If the error persists, contact support"],
                error_code="COST_999",
            )

        return ErrorContext(
            message=f"Unexpected error during {operation}",
            severity=ErrorSeverity.ERROR,
            technical_details=technical,
            context=context,
            recovery_steps=["Retry the operation", "If the error persists, contact support"],
            error_code="UNKNOWN",
        )

    @staticmethod
    def format_shortfall(preview) -> Optional[ErrorContext]:
        """
        Warning for an allocation preview that can't be fully covered.

        Returns None when the preview has no shortfall. The caller decides
        whether to block, warn or allow the outbound entry.
        """
        if not preview.shortfall:
            return None
        return ErrorContext(
            message=f"Insufficient stock for {preview.sku}",
            severity=ErrorSeverity.WARNING,
            technical_details=(
                f"requested={preview.allocation.requested_qty} "
                f"allocated={preview.allocation.allocated_qty} "
                f"shortfall={preview.shortfall_qty}"
            ),
            context={
                "SKU": preview.sku,
                "Requested": preview.allocation.requested_qty,
                "In stock": preview.current_stock,
                "Missing": preview.shortfall_qty,
            },
            recovery_steps=[
                "Reduce the outbound quantity to the stock on hand",
                "Check for receipts that were not recorded yet",
            ],
            error_code="ALLOC_001",
        )

    @staticmethod
    def format_skipped_movements(result) -> Optional[ErrorContext]:
        """Data-quality notice for a replay that skipped malformed movements."""
        if not result.skipped:
            return None
        return ErrorContext(
            message=f"{len(result.skipped)} movement(s) of {result.sku} were ignored",
            severity=ErrorSeverity.WARNING,
            technical_details="; ".join(f"#{s.index}: {s.reason}" for s in result.skipped),
            context={"SKU": result.sku, "Skipped": len(result.skipped)},
            recovery_steps=[
                "Fix the quantity or unit cost of the listed rows in the movement log",
            ],
            error_code="DATA_001",
        )
