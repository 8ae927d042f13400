"""
Error types raised by the invoice document pipeline

Three kinds reach the caller:
- InvalidAmount: numeric input outside its domain (negative, non-finite, too large)
- InvalidLineItem: one or more line items failed validation; nothing was aggregated
- RenderFailure: an asset or layout/rasterization step failed; nothing was emitted

None of them is fatal. The caller decides whether to retry, substitute a
placeholder asset, or show the problem to an operator.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ErrorCode(str, Enum):
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_LINE_ITEM = "INVALID_LINE_ITEM"
    RENDER_FAILURE = "RENDER_FAILURE"


class InvoiceDocumentError(Exception):
    """Base exception for the pipeline"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code.value,
            'message': self.message,
            'details': self.details,
        }


class InvalidAmount(InvoiceDocumentError):
    """Amount is negative, non-finite, non-numeric or absurdly large"""

    def __init__(self, amount: Any, reason: str):
        self.amount = amount
        self.reason = reason
        super().__init__(
            ErrorCode.INVALID_AMOUNT,
            f"Invalid amount {amount!r}: {reason}",
            details={'amount': str(amount), 'reason': reason},
        )


class InvalidLineItem(InvoiceDocumentError):
    """
    Aggregation-time validation failure

    Carries every problem found, as (line_index, message) pairs. Line
    indexes are 1-based, matching the printed row numbers.
    """

    def __init__(self, problems: List[Tuple[int, str]]):
        self.problems = list(problems)
        summary = '; '.join(f"Line {idx}: {msg}" for idx, msg in self.problems)
        super().__init__(
            ErrorCode.INVALID_LINE_ITEM,
            f"{len(self.problems)} invalid line item problem(s): {summary}",
            details={'problems': [{'line': idx, 'error': msg} for idx, msg in self.problems]},
        )

    @property
    def line_indexes(self) -> List[int]:
        return sorted({idx for idx, _ in self.problems})


class RenderFailure(InvoiceDocumentError):
    """Rendering or page assembly could not complete"""

    def __init__(self, message: str, asset: Optional[str] = None, stage: Optional[str] = None):
        self.asset = asset
        self.stage = stage
        super().__init__(
            ErrorCode.RENDER_FAILURE,
            message,
            details={'asset': asset, 'stage': stage},
        )
