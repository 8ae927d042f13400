"""
Data transformer from storefront records to invoice models
Converts the flat customer_* structure returned by the storefront API into
the nested Invoice / Order models
"""

from typing import Dict, Any, Optional
from datetime import date

from models.invoice import Invoice, InvoiceLineItem, CustomerSnapshot, TransportDetails
from models.order import Order, OrderItem


def transform_invoice_data(invoice_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Transform flat invoice structure to the nested structure of Invoice

    Input structure (storefront API):
        {
            "invoice_number": "...",
            "customer_name": "...", "customer_gstin": "...", ...
            "items": [{"product_name": "...", "unit_price": "500.00", ...}],
            "shipping_amount": "50.00",
            ...
        }

    Output structure (for Invoice(**...)):
        {
            "invoice_number": "...",
            "customer": {"name": "...", "gstin": "...", "state": "..."},
            "transport": {...},
            "items": [...],
            ...
        }
    """

    transformed: Dict[str, Any] = {
        'invoice_number': str(invoice_dict['invoice_number']),
        'invoice_date': _to_date(invoice_dict.get('invoice_date')),
        'due_date': _to_date(invoice_dict.get('due_date')),
        'order_number': invoice_dict.get('order_number'),
        'payment_status': (invoice_dict.get('payment_status') or 'pending').lower(),
        'payment_method': invoice_dict.get('payment_method'),
        'notes': invoice_dict.get('notes'),
    }

    # Transform customer_* -> customer snapshot
    customer = _customer_from(invoice_dict)
    transformed['customer'] = customer

    transformed['transport'] = {
        'transport_name': invoice_dict.get('transport_name'),
        'vehicle_number': invoice_dict.get('vehicle_number'),
        'tracking_number': invoice_dict.get('tracking_number'),
        'delivery_date': _to_date(invoice_dict.get('delivery_date')),
    }

    # Amounts arrive as strings from the API; missing means zero
    for field in ('shipping_amount', 'received_amount'):
        transformed[field] = _amount(invoice_dict.get(field))
    transformed['invoice_discount'] = _amount(
        invoice_dict.get('invoice_discount', invoice_dict.get('coupon_discount'))
    )

    # Handle line items
    line_items = []
    for item in invoice_dict.get('items') or []:
        new_item = {
            'product_name': item.get('product_name') or '',
            'hsn_sac': str(item.get('hsn_sac') or ''),
            'quantity': int(item.get('quantity', 0)),
            'unit_price': _amount(item.get('unit_price')),
            'image_ref': item.get('product_image') or item.get('image_ref'),
        }
        for field in ('discount_percentage', 'discount_amount', 'cgst_rate', 'sgst_rate'):
            if item.get(field) not in (None, ''):
                new_item[field] = str(item[field])
        line_items.append(new_item)

    transformed['items'] = line_items

    return transformed


def build_invoice(invoice_dict: Dict[str, Any]) -> Invoice:
    """Transform and validate into an Invoice"""
    data = transform_invoice_data(invoice_dict)
    return Invoice(
        **{k: v for k, v in data.items() if k not in ('customer', 'transport', 'items')},
        customer=CustomerSnapshot(**data['customer']),
        transport=TransportDetails(**data['transport']),
        items=[InvoiceLineItem(**item) for item in data['items']],
    )


def build_order(order_dict: Dict[str, Any]) -> Order:
    """Transform a storefront order record into an Order"""
    items = [
        OrderItem(
            product_name=item.get('product_name'),
            quantity=int(item.get('quantity') or 0),
            unit_price=_amount(item.get('unit_price')),
            total_price=_amount(item.get('total_price')),
        )
        for item in order_dict.get('items') or []
    ]
    return Order(
        order_number=str(order_dict['order_number']),
        created_at=_to_date(order_dict.get('created_at')),
        status=order_dict.get('status'),
        payment_status=order_dict.get('payment_status'),
        payment_method=order_dict.get('payment_method'),
        tracking_number=order_dict.get('tracking_number'),
        customer=CustomerSnapshot(**_customer_from(order_dict)),
        shipping_address=order_dict.get('shipping_address'),
        billing_address=order_dict.get('billing_address'),
        items=items,
        subtotal=_amount(order_dict.get('subtotal')),
        tax_amount=_amount(order_dict.get('tax_amount')),
        shipping_amount=_amount(order_dict.get('shipping_amount')),
        total_amount=_amount(order_dict.get('total_amount')),
    )


def _customer_from(record: Dict[str, Any]) -> Dict[str, Any]:
    gstin = record.get('customer_gstin') or None
    state = record.get('customer_state') or None

    # Extract state from GSTIN (first 2 digits) when not given
    if not state and gstin and len(gstin) >= 2:
        state = _get_state_name(gstin[:2])

    return {
        'name': record.get('customer_name'),
        'email': record.get('customer_email'),
        'phone': record.get('customer_phone'),
        'address': record.get('customer_address'),
        'city': record.get('customer_city'),
        'pincode': str(record['customer_pincode']) if record.get('customer_pincode') else None,
        'state': state,
        'gstin': gstin,
        'shipping_address': record.get('shipping_address'),
    }


def _amount(value: Any) -> str:
    if value is None or value == '':
        return '0'
    return str(value)


def _to_date(value: Any) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _get_state_name(state_code: str) -> Optional[str]:
    """Get state name from GSTIN state code"""

    state_mapping = {
        "01": "Jammu and Kashmir",
        "02": "Himachal Pradesh",
        "03": "Punjab",
        "04": "Chandigarh",
        "05": "Uttarakhand",
        "06": "Haryana",
        "07": "Delhi",
        "08": "Rajasthan",
        "09": "Uttar Pradesh",
        "10": "Bihar",
        "11": "Sikkim",
        "12": "Arunachal Pradesh",
        "13": "Nagaland",
        "14": "Manipur",
        "15": "Mizoram",
        "16": "Tripura",
        "17": "Meghalaya",
        "18": "Assam",
        "19": "West Bengal",
        "20": "Jharkhand",
        "21": "Odisha",
        "22": "Chhattisgarh",
        "23": "Madhya Pradesh",
        "24": "Gujarat",
        "26": "Dadra and Nagar Haveli and Daman and Diu",
        "27": "Maharashtra",
        "29": "Karnataka",
        "30": "Goa",
        "31": "Lakshadweep",
        "32": "Kerala",
        "33": "Tamil Nadu",
        "34": "Puducherry",
        "35": "Andaman and Nicobar Islands",
        "36": "Telangana",
        "37": "Andhra Pradesh",
        "38": "Ladakh",
    }

    return state_mapping.get(state_code)
