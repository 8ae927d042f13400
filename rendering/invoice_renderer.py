"""
Tax invoice layout

Blocks, top to bottom: header, issuer, bill-to, transport, invoice details,
line items, totals, tax breakdown, amount in words, payment mode, bank
details, terms, signature. Anything optional that is missing prints as N/A.
"""

from typing import Dict, List, Optional

from PIL import Image

from billing.amount_words import amount_to_words
from models.invoice import CompanyProfile, NormalizedInvoice, PaymentStatus
from rendering.layout import (
    BODY, HEADING, LABEL, SMALL, TITLE, Badge, Block, Cell, Column, Columns, ImageBlock,
    KeyValueTable, Paragraph, RenderContext, Rule, Section, Spacer, Stack, Table, TextStyle,
    render_blocks,
)
from rendering.surface import FontSet, RasterSurface, load_image
from utils.config import PipelineConfig
from utils.formatting import CurrencyFormatter, format_date, format_percent, or_na

STATUS_COLORS = {
    PaymentStatus.PENDING: (245, 158, 11),
    PaymentStatus.PAID: (16, 185, 129),
    PaymentStatus.OVERDUE: (239, 68, 68),
    PaymentStatus.CANCELLED: (107, 114, 128),
}


class DocumentRenderer:
    """Shared setup for document layouts: geometry, fonts, money format"""

    def __init__(self, config: PipelineConfig = None):
        self.config = config or PipelineConfig()
        self.money = CurrencyFormatter(self.config.currency_code, self.config.locale)

    @property
    def surface_width(self) -> int:
        return int(round(self.config.printable_width_mm * self.config.px_per_mm))

    def _context(self) -> RenderContext:
        fonts = FontSet(self.config.px_per_mm, self.config.font_path, self.config.bold_font_path)
        return RenderContext(fonts=fonts, px_per_mm=self.config.px_per_mm)

    def _render(self, blocks: List[Block]) -> RasterSurface:
        return render_blocks(blocks, self._context(), self.surface_width)


class InvoiceRenderer(DocumentRenderer):
    """Renders a normalized invoice onto one tall raster surface"""

    def render(self, normalized: NormalizedInvoice, company: CompanyProfile) -> RasterSurface:
        """
        Render the full invoice

        Image assets are loaded before any layout so a missing logo or
        thumbnail fails fast. Loaded assets are released on every path.

        Raises:
            RenderFailure: an asset could not be loaded or drawing failed
        """
        assets: Dict[str, Image.Image] = {}
        try:
            self._load_assets(normalized, company, assets)
            blocks = self.build_blocks(normalized, company, assets)
            return self._render(blocks)
        finally:
            for image in assets.values():
                image.close()

    def _load_assets(self, normalized, company, assets):
        refs = []
        if company.company_logo:
            refs.append(company.company_logo)
        refs.extend(item.image_ref for item in normalized.items if item.image_ref)
        for ref in refs:
            if ref not in assets:
                assets[ref] = load_image(ref)

    def build_blocks(self, normalized: NormalizedInvoice, company: CompanyProfile,
                     assets: Optional[Dict[str, Image.Image]] = None) -> List[Block]:
        assets = assets or {}
        return [
            self._header(normalized, company, assets),
            Rule(),
            self._issuer(company),
            self._bill_to(normalized),
            self._transport(normalized),
            self._invoice_details(normalized, company),
            self._items_table(normalized, assets),
            self._totals(normalized),
            self._tax_breakdown(normalized),
            self._amount_in_words(normalized),
            self._payment_mode(normalized),
            self._bank_details(company),
            self._terms(company),
            self._signature(company),
        ]

    def _header(self, normalized, company, assets) -> Block:
        if company.company_logo:
            left: Block = ImageBlock(assets[company.company_logo], max_width_mm=45, max_height_mm=22)
        else:
            left = Paragraph([(company.company_name, TITLE)])

        status = normalized.invoice.payment_status
        right = Paragraph([
            ("Tax Invoice", TextStyle(size_mm=TITLE.size_mm, bold=True, align="right")),
            ("Original", TextStyle(size_mm=SMALL.size_mm, color=SMALL.color, align="right")),
        ])
        badge = Badge(status.value.upper(), STATUS_COLORS.get(status, STATUS_COLORS[PaymentStatus.CANCELLED]))
        return Columns([left, Stack([right, Spacer(1.5), badge])], weights=[1, 1])

    def _issuer(self, company: CompanyProfile) -> Block:
        return Paragraph([
            (company.company_name, HEADING),
            (or_na(company.company_address), BODY),
            (f"Phone: {or_na(company.company_phone)}", BODY),
            (f"Email: {or_na(company.company_email)}", BODY),
            (f"GSTIN: {or_na(company.company_gstin)}", BODY),
            (f"State: {or_na(company.company_state)}", BODY),
        ])

    def _bill_to(self, normalized: NormalizedInvoice) -> Block:
        customer = normalized.invoice.customer
        lines = [
            (or_na(customer.name), LABEL),
            (f"Email: {or_na(customer.email)}", BODY),
            (f"Phone: {or_na(customer.phone)}", BODY),
            (f"Address: {or_na(customer.full_address())}", BODY),
            (f"State: {or_na(customer.state)}", BODY),
            (f"GSTIN: {or_na(customer.gstin)}", BODY),
            ("Shipping Address:", LABEL),
            (or_na(customer.shipping_address), BODY),
        ]
        return Section("Bill To", Paragraph(lines), border=True)

    def _transport(self, normalized: NormalizedInvoice) -> Block:
        transport = normalized.invoice.transport
        lines = [
            (f"Transport Name: {or_na(transport.transport_name)}", BODY),
            (f"Vehicle Number: {or_na(transport.vehicle_number)}", BODY),
            (f"Tracking Number: {or_na(transport.tracking_number)}", BODY),
            (f"Delivery Date: {format_date(transport.delivery_date)}", BODY),
        ]
        return Section("Transportation Details", Paragraph(lines), border=True)

    def _invoice_details(self, normalized: NormalizedInvoice, company: CompanyProfile) -> Block:
        invoice = normalized.invoice
        place_of_supply = invoice.customer.state or company.company_state
        lines = [
            (f"Invoice No.: {invoice.invoice_number}", LABEL),
            (f"Date: {format_date(invoice.invoice_date)}", BODY),
            (f"Due Date: {format_date(invoice.due_date)}", BODY),
            (f"Place of Supply: {or_na(place_of_supply)}", BODY),
            (f"Order No.: {or_na(invoice.order_number)}", BODY),
            (f"Payment Status: {invoice.payment_status.value.capitalize()}", BODY),
        ]
        return Section("Invoice Details", Paragraph(lines), border=True)

    def _items_table(self, normalized: NormalizedInvoice, assets) -> Block:
        money = self.money
        has_images = any(item.image_ref for item in normalized.items)

        columns = [Column("#", 0.5, "center")]
        if has_images:
            columns.append(Column("Image", 1.2, "center"))
        columns += [
            Column("Item name", 3.0, "left"),
            Column("HSN/SAC", 1.3, "left"),
            Column("Qty", 0.8, "right"),
            Column("Price/ unit", 1.6, "right"),
            Column("Discount", 1.8, "right"),
            Column("Taxable", 1.6, "right"),
            Column("CGST", 1.4, "right"),
            Column("SGST", 1.4, "right"),
            Column("Amount", 1.7, "right"),
        ]

        rows = []
        for item in normalized.items:
            row = [Cell(str(item.line_number))]
            if has_images:
                row.append(Cell(image=assets.get(item.image_ref)) if item.image_ref else Cell("-"))
            row += [
                Cell(item.product_name),
                Cell(or_na(item.hsn_sac)),
                Cell(str(item.quantity)),
                Cell(money(item.unit_price)),
                Cell(f"{money(item.discount_amount)} ({item.discount_percentage:.2f}%)"),
                Cell(money(item.taxable_amount)),
                Cell(f"{money(item.cgst_amount)} ({format_percent(item.cgst_rate)})"),
                Cell(f"{money(item.sgst_amount)} ({format_percent(item.sgst_rate)})"),
                Cell(money(item.line_total)),
            ]
            rows.append(row)

        footer = [Cell("", bold=True)]
        if has_images:
            footer.append(Cell("", bold=True))
        footer += [
            Cell("Total", bold=True),
            Cell("", bold=True),
            Cell(str(normalized.total_quantity), bold=True),
            Cell("", bold=True),
            Cell(money(normalized.discount_total), bold=True),
            Cell(money(normalized.subtotal), bold=True),
            Cell(money(normalized.cgst_total), bold=True),
            Cell(money(normalized.sgst_total), bold=True),
            Cell(money(normalized.subtotal + normalized.tax_amount), bold=True),
        ]
        return Table(columns=columns, rows=rows, footer=footer)

    def _totals(self, normalized: NormalizedInvoice) -> Block:
        money = self.money
        rows = [
            ("Sub Total", money(normalized.subtotal)),
            ("Discount", money(normalized.discount_total)),
            ("CGST", money(normalized.cgst_total)),
            ("SGST", money(normalized.sgst_total)),
            ("Shipping", money(normalized.shipping_amount)),
            ("Total", money(normalized.total_amount)),
            ("Received", money(normalized.received_amount)),
            ("Balance Due", money(normalized.balance_due)),
        ]
        return KeyValueTable(rows, emphasis=("Total", "Balance Due"))

    def _tax_breakdown(self, normalized: NormalizedInvoice) -> Block:
        money = self.money
        columns = [
            Column("HSN/SAC", 1.4),
            Column("Taxable Value", 1.8, "right"),
            Column("CGST Rate", 1.1, "right"),
            Column("CGST Amount", 1.6, "right"),
            Column("SGST Rate", 1.1, "right"),
            Column("SGST Amount", 1.6, "right"),
            Column("Total Tax", 1.6, "right"),
        ]
        rows = [
            [
                Cell(or_na(row.hsn_sac)),
                Cell(money(row.taxable_amount)),
                Cell(format_percent(row.cgst_rate)),
                Cell(money(row.cgst_amount)),
                Cell(format_percent(row.sgst_rate)),
                Cell(money(row.sgst_amount)),
                Cell(money(row.total_tax)),
            ]
            for row in normalized.tax_breakdown
        ]
        footer = [
            Cell("Total", bold=True),
            Cell(money(normalized.subtotal), bold=True),
            Cell("", bold=True),
            Cell(money(normalized.cgst_total), bold=True),
            Cell("", bold=True),
            Cell(money(normalized.sgst_total), bold=True),
            Cell(money(normalized.tax_amount), bold=True),
        ]
        return Section("Tax Summary", Table(columns=columns, rows=rows, footer=footer,
                                            empty_text="No taxable items"))

    def _amount_in_words(self, normalized: NormalizedInvoice) -> Block:
        return Section("Invoice Amount In Words", Paragraph([(amount_to_words(normalized.total_amount), BODY)]))

    def _payment_mode(self, normalized: NormalizedInvoice) -> Block:
        invoice = normalized.invoice
        return Paragraph([
            (f"Payment Mode: {or_na(invoice.payment_method)}", LABEL),
            (f"Notes: {or_na(invoice.notes)}", BODY),
        ])

    def _bank_details(self, company: CompanyProfile) -> Block:
        bank = company.bank_details
        lines = [
            (f"Bank Name: {or_na(bank.bank_name if bank else None)}", BODY),
            (f"Account No.: {or_na(bank.account_number if bank else None)}", BODY),
            (f"IFSC Code: {or_na(bank.ifsc_code if bank else None)}", BODY),
            (f"Branch: {or_na(bank.branch if bank else None)}", BODY),
        ]
        return Section("Bank Details", Paragraph(lines), border=True)

    def _terms(self, company: CompanyProfile) -> Block:
        return Section("Terms and Conditions", Paragraph([(or_na(company.invoice_terms), BODY)]))

    def _signature(self, company: CompanyProfile) -> Block:
        right = TextStyle(align="right")
        return Paragraph([
            (f"For: {company.company_name}", TextStyle(bold=True, align="right")),
            ("", right),
            ("", right),
            ("______________________", right),
            ("Authorized Signatory", right),
        ])
