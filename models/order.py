"""
Order confirmation models

Orders are printed through the same renderer and exporter as invoices; they
carry their own totals because the storefront computes them at checkout.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import date
from decimal import Decimal

from models.invoice import CustomerSnapshot


class OrderItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_name: Optional[str] = None
    quantity: int = 0
    unit_price: Decimal = Decimal('0')
    total_price: Decimal = Decimal('0')


class Order(BaseModel):
    """Order as shown on the customer's order confirmation"""
    model_config = ConfigDict(frozen=True)

    order_number: str = Field(min_length=1)
    created_at: Optional[date] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    payment_method: Optional[str] = None
    tracking_number: Optional[str] = None

    customer: CustomerSnapshot = Field(default_factory=CustomerSnapshot)
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None

    items: List[OrderItem] = Field(default_factory=list)
    subtotal: Decimal = Decimal('0')
    tax_amount: Decimal = Decimal('0')
    shipping_amount: Decimal = Decimal('0')
    total_amount: Decimal = Decimal('0')
