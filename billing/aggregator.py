"""
Invoice aggregation

Turns raw line items into the figures printed on the invoice. Every
multiplication is rounded to paisa immediately, so the printed per-line
figures always add up to the printed totals.
"""

from collections import OrderedDict
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from models.invoice import (
    Invoice, InvoiceLineItem, NormalizedInvoice, NormalizedLineItem, TaxBreakdownRow,
)
from utils.config import PipelineConfig
from utils.errors import InvalidAmount
from utils.validators import LineItemValidator

ZERO = Decimal('0')
HUNDRED = Decimal('100')
PAISA = Decimal('0.01')


def round2(value: Decimal) -> Decimal:
    """Round to paisa, half-up"""
    return Decimal(value).quantize(PAISA, rounding=ROUND_HALF_UP)


class InvoiceAggregator:
    """
    Normalizes an invoice into printable totals

    Tax rate for a line comes from, in order: the line itself, the GST rate
    schedule (when one is supplied), the configured defaults.
    """

    def __init__(self, config: PipelineConfig = None, rate_schedule=None):
        self.config = config or PipelineConfig()
        self.rate_schedule = rate_schedule
        self.validator = LineItemValidator(self.config.max_line_amount)

    def aggregate(self, invoice: Invoice) -> NormalizedInvoice:
        """Validate and aggregate; raises before computing anything on bad input"""

        self._validate_invoice_amounts(invoice)
        self.validator.validate(invoice).raise_for_errors()

        discounts = self._line_discounts(invoice)

        items = []
        for idx, (item, discount) in enumerate(zip(invoice.items, discounts), 1):
            items.append(self._normalize_line(idx, item, discount, invoice))

        subtotal = sum((i.taxable_amount for i in items), ZERO)
        cgst_total = sum((i.cgst_amount for i in items), ZERO)
        sgst_total = sum((i.sgst_amount for i in items), ZERO)
        tax_amount = cgst_total + sgst_total
        shipping = round2(invoice.shipping_amount)
        total = subtotal + tax_amount + shipping

        received = round2(invoice.received_amount)
        if received > total:
            raise InvalidAmount(
                invoice.received_amount,
                f"received amount exceeds invoice total {total}",
            )

        return NormalizedInvoice(
            invoice=invoice,
            items=items,
            tax_breakdown=self._tax_breakdown(items),
            subtotal=subtotal,
            cgst_total=cgst_total,
            sgst_total=sgst_total,
            tax_amount=tax_amount,
            shipping_amount=shipping,
            discount_total=sum((i.discount_amount for i in items), ZERO),
            total_amount=total,
            received_amount=received,
            balance_due=total - received,
            total_quantity=sum(i.quantity for i in items),
        )

    def _validate_invoice_amounts(self, invoice: Invoice):
        for name, value in (
            ('shipping amount', invoice.shipping_amount),
            ('invoice discount', invoice.invoice_discount),
            ('received amount', invoice.received_amount),
        ):
            if not value.is_finite():
                raise InvalidAmount(value, f"{name} must be finite")
            if value < ZERO:
                raise InvalidAmount(value, f"{name} cannot be negative")

    def _own_discount(self, item: InvoiceLineItem, gross: Decimal) -> Decimal:
        if item.discount_amount is not None:
            return round2(item.discount_amount)
        if item.discount_percentage:
            return round2(gross * item.discount_percentage / HUNDRED)
        return ZERO

    def _line_discounts(self, invoice: Invoice) -> List[Decimal]:
        """
        Per-line discount including each line's share of the invoice discount

        The invoice-level discount is split pro rata to what remains of each
        line after its own discount, by largest remainder: every share is
        floored to paisa, then the leftover paisa go one each to the lines
        with the largest fractional parts (earlier lines first on ties). No
        share exceeds what remains of its line.
        """
        grosses = [round2(item.unit_price * item.quantity) for item in invoice.items]
        own = [self._own_discount(item, gross) for item, gross in zip(invoice.items, grosses)]

        extra = round2(invoice.invoice_discount)
        if extra == ZERO:
            return own

        remaining = [gross - disc for gross, disc in zip(grosses, own)]
        base = sum(remaining, ZERO)
        if extra > base:
            raise InvalidAmount(
                invoice.invoice_discount,
                f"invoice discount exceeds discountable value {base}",
            )

        exact = [extra * value / base for value in remaining]
        shares = [share.quantize(PAISA, rounding=ROUND_DOWN) for share in exact]
        leftover = extra - sum(shares, ZERO)

        by_fraction = sorted(range(len(shares)), key=lambda i: (-(exact[i] - shares[i]), i))
        for i in by_fraction:
            if leftover <= ZERO:
                break
            if shares[i] + PAISA <= remaining[i]:
                shares[i] += PAISA
                leftover -= PAISA

        return [disc + share for disc, share in zip(own, shares)]

    def _resolve_rates(self, item: InvoiceLineItem, invoice: Invoice) -> Tuple[Decimal, Decimal]:
        cgst, sgst = item.cgst_rate, item.sgst_rate
        if (cgst is None or sgst is None) and self.rate_schedule is not None and item.hsn_sac:
            scheduled = self.rate_schedule.find_rate(item.hsn_sac, invoice.invoice_date)
            if scheduled is not None:
                cgst = scheduled['cgst'] if cgst is None else cgst
                sgst = scheduled['sgst'] if sgst is None else sgst
        if cgst is None:
            cgst = self.config.default_cgst_rate
        if sgst is None:
            sgst = self.config.default_sgst_rate
        return Decimal(cgst), Decimal(sgst)

    def _normalize_line(
        self,
        idx: int,
        item: InvoiceLineItem,
        discount: Decimal,
        invoice: Invoice,
    ) -> NormalizedLineItem:
        gross = round2(item.unit_price * item.quantity)
        taxable = round2(gross - discount)
        cgst_rate, sgst_rate = self._resolve_rates(item, invoice)
        cgst = round2(taxable * cgst_rate)
        sgst = round2(taxable * sgst_rate)

        # supplied percentage is printed only when it produced the discount
        if (item.discount_percentage is not None and item.discount_amount is None
                and invoice.invoice_discount == ZERO):
            pct = Decimal(item.discount_percentage)
        elif gross > ZERO:
            pct = round2(discount * HUNDRED / gross)
        else:
            pct = ZERO

        return NormalizedLineItem(
            line_number=idx,
            product_name=item.product_name,
            hsn_sac=item.hsn_sac,
            quantity=item.quantity,
            unit_price=round2(item.unit_price),
            gross_amount=gross,
            discount_percentage=pct,
            discount_amount=discount,
            taxable_amount=taxable,
            cgst_rate=cgst_rate,
            sgst_rate=sgst_rate,
            cgst_amount=cgst,
            sgst_amount=sgst,
            line_total=taxable + cgst + sgst,
            image_ref=item.image_ref,
        )

    def _tax_breakdown(self, items: List[NormalizedLineItem]) -> List[TaxBreakdownRow]:
        """Group by (HSN/SAC, CGST rate, SGST rate), first-seen order"""

        groups: Dict[tuple, Dict[str, Decimal]] = OrderedDict()
        for item in items:
            key = (item.hsn_sac or '', item.cgst_rate, item.sgst_rate)
            bucket = groups.setdefault(key, {'taxable': ZERO, 'cgst': ZERO, 'sgst': ZERO})
            bucket['taxable'] += item.taxable_amount
            bucket['cgst'] += item.cgst_amount
            bucket['sgst'] += item.sgst_amount

        return [
            TaxBreakdownRow(
                hsn_sac=hsn,
                cgst_rate=cgst_rate,
                sgst_rate=sgst_rate,
                taxable_amount=bucket['taxable'],
                cgst_amount=bucket['cgst'],
                sgst_amount=bucket['sgst'],
            )
            for (hsn, cgst_rate, sgst_rate), bucket in groups.items()
        ]


def aggregate_invoice(invoice: Invoice, config: Optional[PipelineConfig] = None) -> NormalizedInvoice:
    """Convenience wrapper using the configured defaults only"""
    return InvoiceAggregator(config).aggregate(invoice)
