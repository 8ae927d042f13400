"""
Invoice data models using Pydantic

Invoice and its parts are frozen: once issued, line items and amounts never
change. Derived figures live on NormalizedInvoice, which only the aggregator
builds.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import date
from decimal import Decimal
from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class InvoiceLineItem(BaseModel):
    """Line item as supplied upstream, before any derivation"""
    model_config = ConfigDict(frozen=True)

    product_name: str
    hsn_sac: str = ""
    quantity: int
    unit_price: Decimal

    # Optional fields
    discount_percentage: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    cgst_rate: Optional[Decimal] = None
    sgst_rate: Optional[Decimal] = None
    image_ref: Optional[str] = None


class CustomerSnapshot(BaseModel):
    """Customer details as they were when the invoice was issued"""
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    pincode: Optional[str] = None
    state: Optional[str] = None
    gstin: Optional[str] = None
    shipping_address: Optional[str] = None

    def full_address(self) -> Optional[str]:
        if not self.address:
            return None
        text = self.address
        if self.city:
            text += f", {self.city}"
        if self.pincode:
            text += f" - {self.pincode}"
        return text


class TransportDetails(BaseModel):
    """Delivery information; every field may be missing"""
    model_config = ConfigDict(frozen=True)

    transport_name: Optional[str] = None
    vehicle_number: Optional[str] = None
    tracking_number: Optional[str] = None
    delivery_date: Optional[date] = None


class Invoice(BaseModel):
    """Complete invoice record"""
    model_config = ConfigDict(frozen=True)

    # Document Information
    invoice_number: str = Field(min_length=1)
    invoice_date: date
    due_date: Optional[date] = None
    order_number: Optional[str] = None

    # Parties
    customer: CustomerSnapshot = Field(default_factory=CustomerSnapshot)
    transport: TransportDetails = Field(default_factory=TransportDetails)

    # Financial Details
    items: List[InvoiceLineItem] = Field(default_factory=list)
    shipping_amount: Decimal = Decimal('0')
    invoice_discount: Decimal = Decimal('0')
    received_amount: Decimal = Decimal('0')

    # Payment
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: Optional[str] = None

    notes: Optional[str] = None


class NormalizedLineItem(BaseModel):
    """Line item with every printed figure recomputed"""
    model_config = ConfigDict(frozen=True)

    line_number: int
    product_name: str
    hsn_sac: str
    quantity: int
    unit_price: Decimal
    gross_amount: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    cgst_rate: Decimal
    sgst_rate: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    line_total: Decimal
    image_ref: Optional[str] = None

    @property
    def tax_amount(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount


class TaxBreakdownRow(BaseModel):
    """Tax summary for one HSN/SAC code at one rate pair"""
    model_config = ConfigDict(frozen=True)

    hsn_sac: str
    cgst_rate: Decimal
    sgst_rate: Decimal
    taxable_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal

    @property
    def total_tax(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount


class NormalizedInvoice(BaseModel):
    """Invoice with aggregated totals, ready to render"""
    model_config = ConfigDict(frozen=True)

    invoice: Invoice
    items: List[NormalizedLineItem]
    tax_breakdown: List[TaxBreakdownRow]

    subtotal: Decimal
    cgst_total: Decimal
    sgst_total: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_total: Decimal
    total_amount: Decimal
    received_amount: Decimal
    balance_due: Decimal
    total_quantity: int

    @property
    def invoice_number(self) -> str:
        return self.invoice.invoice_number


class BankDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc_code: Optional[str] = None
    branch: Optional[str] = None


class CompanyProfile(BaseModel):
    """Issuer details, supplied whole and treated as read-only"""
    model_config = ConfigDict(frozen=True)

    company_name: str
    company_address: Optional[str] = None
    company_phone: Optional[str] = None
    company_email: Optional[str] = None
    company_gstin: Optional[str] = None
    company_state: Optional[str] = None
    company_logo: Optional[str] = None
    bank_details: Optional[BankDetails] = None
    invoice_terms: str = "Thanks for doing business with us!"
