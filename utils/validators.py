"""
Validation Layer for Invoice Line Items
Catches malformed line items before any aggregation happens
"""

from decimal import Decimal
from typing import List, Optional, Tuple

from models.invoice import Invoice, InvoiceLineItem
from utils.errors import InvalidLineItem

ZERO = Decimal('0')
ONE = Decimal('1')
HUNDRED = Decimal('100')


class ValidationResult:
    """Result of validation check"""

    def __init__(self, is_valid: bool, errors: List[Tuple[int, str]] = None):
        self.is_valid = is_valid
        self.errors = errors or []

    def __bool__(self):
        return self.is_valid

    def add_error(self, line: int, error: str):
        self.errors.append((line, error))
        self.is_valid = False

    def raise_for_errors(self):
        if not self.is_valid:
            raise InvalidLineItem(self.errors)


class LineItemValidator:
    """
    All-or-nothing line item validator

    Every line is checked and every problem recorded; the caller either gets
    a clean result or one InvalidLineItem listing all of them.
    """

    def __init__(self, max_line_amount: Decimal = Decimal('1000000000')):
        self.max_line_amount = Decimal(max_line_amount)

    def validate(self, invoice: Invoice) -> ValidationResult:
        """
        Validate every line item of an invoice

        Args:
            invoice: Invoice whose items are checked

        Returns:
            ValidationResult with is_valid flag and (line, error) list
        """
        return self.validate_items(invoice.items)

    def validate_items(self, items: List[InvoiceLineItem]) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        for i, item in enumerate(items, 1):
            self._validate_identity(i, item, result)
            self._validate_quantity(i, item, result)
            self._validate_price(i, item, result)
            self._validate_discount(i, item, result)
            self._validate_rates(i, item, result)

        return result

    def _validate_identity(self, i: int, item: InvoiceLineItem, result: ValidationResult):
        if not item.product_name or not item.product_name.strip():
            result.add_error(i, "product name is required")

    def _validate_quantity(self, i: int, item: InvoiceLineItem, result: ValidationResult):
        if item.quantity <= 0:
            result.add_error(i, f"quantity must be positive, got {item.quantity}")

    def _validate_price(self, i: int, item: InvoiceLineItem, result: ValidationResult):
        if not item.unit_price.is_finite():
            result.add_error(i, "unit price must be a finite number")
            return
        if item.unit_price < ZERO:
            result.add_error(i, f"unit price cannot be negative, got {item.unit_price}")
            return

        gross = item.unit_price * max(item.quantity, 0)
        if gross > self.max_line_amount:
            result.add_error(
                i, f"line amount {gross} exceeds limit {self.max_line_amount}"
            )

    def _validate_discount(self, i: int, item: InvoiceLineItem, result: ValidationResult):
        pct = item.discount_percentage
        if pct is not None:
            if not pct.is_finite() or pct < ZERO or pct > HUNDRED:
                result.add_error(i, f"discount percentage must be between 0 and 100, got {pct}")

        amount = item.discount_amount
        if amount is not None:
            if not amount.is_finite() or amount < ZERO:
                result.add_error(i, f"discount amount cannot be negative, got {amount}")
            elif item.unit_price.is_finite() and item.quantity > 0:
                gross = item.unit_price * item.quantity
                if amount > gross:
                    result.add_error(i, f"discount {amount} exceeds line amount {gross}")

    def _validate_rates(self, i: int, item: InvoiceLineItem, result: ValidationResult):
        for name, rate in (('CGST', item.cgst_rate), ('SGST', item.sgst_rate)):
            if rate is None:
                continue
            if not rate.is_finite() or rate < ZERO or rate > ONE:
                result.add_error(i, f"{name} rate must be a fraction between 0 and 1, got {rate}")


def validate_line_items(items: List[InvoiceLineItem], max_line_amount: Optional[Decimal] = None) -> ValidationResult:
    """
    Quick validation function

    Usage:
        result = validate_line_items(invoice.items)
        if not result:
            print(f"Validation errors: {result.errors}")
    """
    if max_line_amount is None:
        validator = LineItemValidator()
    else:
        validator = LineItemValidator(max_line_amount)
    return validator.validate_items(items)
