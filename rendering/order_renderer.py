"""
Order confirmation layout
"""

from models.order import Order
from rendering.invoice_renderer import DocumentRenderer
from rendering.layout import (
    BODY, LABEL, SMALL, TITLE, Cell, Column, Columns, KeyValueTable, Paragraph, Rule,
    Section, Table, TextStyle,
)
from rendering.surface import RasterSurface
from utils.formatting import format_date, or_na


class OrderRenderer(DocumentRenderer):
    """Renders an order confirmation onto one tall raster surface"""

    def render(self, order: Order) -> RasterSurface:
        money = self.money
        customer = order.customer

        header = Paragraph([
            ("Order Confirmation", TextStyle(size_mm=TITLE.size_mm, bold=True, align="center")),
            (f"Order Number: {order.order_number}", TextStyle(size_mm=SMALL.size_mm, color=SMALL.color, align="center")),
        ])

        shipping = or_na(order.shipping_address)
        billing = or_na(order.billing_address or order.shipping_address)
        addresses = Columns([
            Section("Shipping Address", Paragraph([(shipping, BODY)])),
            Section("Billing Address", Paragraph([(billing, BODY)])),
        ])

        customer_info = Section("Customer Information", Paragraph([
            (f"Name: {or_na(customer.name)}", BODY),
            (f"Email: {or_na(customer.email)}", BODY),
            (f"Phone: {or_na(customer.phone)}", BODY),
        ]))

        items = Section("Order Items", Table(
            columns=[
                Column("Item", 3.0),
                Column("Quantity", 1.0, "center"),
                Column("Price", 1.5, "right"),
                Column("Total", 1.5, "right"),
            ],
            rows=[
                [
                    Cell(or_na(item.product_name)),
                    Cell(str(item.quantity)),
                    Cell(money(item.unit_price)),
                    Cell(money(item.total_price)),
                ]
                for item in order.items
            ],
        ))

        totals = KeyValueTable([
            ("Subtotal:", money(order.subtotal)),
            ("Tax:", money(order.tax_amount)),
            ("Shipping:", money(order.shipping_amount)),
            ("Total:", money(order.total_amount)),
        ], emphasis=("Total:",))

        status = Paragraph([
            (f"Order Status: {or_na(order.status)}", BODY),
            (f"Payment Status: {or_na(order.payment_status)}", BODY),
            (f"Payment Method: {or_na(order.payment_method)}", BODY),
            (f"Tracking Number: {or_na(order.tracking_number)}", BODY),
            (f"Order Date: {format_date(order.created_at)}", LABEL),
        ])

        return self._render([
            header, Rule(), addresses, customer_info, items, Rule(thickness_mm=0.5), totals,
            Rule(thickness_mm=0.2), status,
        ])
