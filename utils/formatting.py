"""
Locale-fixed formatting for printed documents

One formatter per document: every monetary value on a page goes through the
same CurrencyFormatter so grouping and symbol never differ between cells.
"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

NOT_AVAILABLE = "N/A"

CURRENCY_SYMBOLS = {
    'INR': '₹',
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
    'AED': 'AED ',
}

# Locales whose digit grouping is 3 then 2s (12,34,56,789.00)
INDIAN_GROUPING_LOCALES = {'en_IN', 'hi_IN', 'gu_IN', 'mr_IN', 'ta_IN', 'te_IN', 'kn_IN', 'bn_IN'}


def group_indian(digits: str) -> str:
    """Group an integer digit string as 12,34,567"""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    parts = []
    while len(head) > 2:
        parts.insert(0, head[-2:])
        head = head[:-2]
    if head:
        parts.insert(0, head)
    return ','.join(parts) + ',' + tail


def group_western(digits: str) -> str:
    """Group an integer digit string as 1,234,567"""
    return f"{int(digits):,}"


class CurrencyFormatter:
    """Format amounts for a fixed locale and currency"""

    def __init__(self, currency_code: str = "INR", locale: str = "en_IN"):
        self.currency_code = currency_code.upper()
        self.locale = locale
        self.symbol = CURRENCY_SYMBOLS.get(self.currency_code, f"{self.currency_code} ")
        self._group = group_indian if locale in INDIAN_GROUPING_LOCALES else group_western

    def number(self, amount: Union[Decimal, int, float, str]) -> str:
        """Grouped number with two decimals, no symbol"""
        value = Decimal(str(amount)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        sign = '-' if value < 0 else ''
        whole, _, fraction = f"{abs(value):.2f}".partition('.')
        return f"{sign}{self._group(whole)}.{fraction}"

    def __call__(self, amount: Optional[Union[Decimal, int, float, str]]) -> str:
        if amount is None:
            amount = 0
        text = self.number(amount)
        if text.startswith('-'):
            return f"-{self.symbol}{text[1:]}"
        return f"{self.symbol}{text}"


def format_date(value: Optional[Union[date, datetime, str]]) -> str:
    """Format as '15 Sep 2024'; missing dates print as N/A"""
    if value is None or value == '':
        return NOT_AVAILABLE
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value
    return value.strftime('%d %b %Y')


def format_percent(rate: Decimal) -> str:
    """0.09 -> '9%', 0.025 -> '2.5%'"""
    pct = (Decimal(rate) * 100).normalize()
    text = format(pct, 'f')
    return f"{text}%"


def or_na(value) -> str:
    """Printable value, with N/A for anything blank"""
    if value is None:
        return NOT_AVAILABLE
    text = str(value).strip()
    return text if text else NOT_AVAILABLE
