"""
Amount in words, Indian numbering system

Groups are Thousand, Lakh (10^5) and Crore (10^7); there is no million or
billion. Above a crore the crore count is itself spelled recursively, so
10^9 reads "One Hundred Crore".
"""

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Tuple, Union

from utils.errors import InvalidAmount


ONES = ['', 'One', 'Two', 'Three', 'Four', 'Five', 'Six', 'Seven', 'Eight', 'Nine']
TEENS = ['Ten', 'Eleven', 'Twelve', 'Thirteen', 'Fourteen', 'Fifteen',
         'Sixteen', 'Seventeen', 'Eighteen', 'Nineteen']
TENS = ['', '', 'Twenty', 'Thirty', 'Forty', 'Fifty', 'Sixty', 'Seventy', 'Eighty', 'Ninety']

THOUSAND = 1_000
LAKH = 100_000
CRORE = 10_000_000

# 10^15 rupees; anything larger is treated as corrupt input
MAX_WORDS_AMOUNT = 10 ** 15


def _group(n: int, size: int, name: str) -> str:
    words = f"{number_to_words(n // size)} {name}"
    remainder = n % size
    if remainder:
        words += f" {number_to_words(remainder)}"
    return words


def number_to_words(n: int) -> str:
    """
    Convert a non-negative integer to English words

    Examples:
        >>> number_to_words(0)
        'Zero'
        >>> number_to_words(125000)
        'One Lakh Twenty Five Thousand'
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise InvalidAmount(n, "expected a whole number of currency units")
    if n < 0:
        raise InvalidAmount(n, "amount cannot be negative")
    if n > MAX_WORDS_AMOUNT:
        raise InvalidAmount(n, f"amount exceeds {MAX_WORDS_AMOUNT}")

    if n == 0:
        return 'Zero'
    if n < 10:
        return ONES[n]
    if n < 20:
        return TEENS[n - 10]
    if n < 100:
        return TENS[n // 10] + (f" {ONES[n % 10]}" if n % 10 else '')
    if n < THOUSAND:
        return _group(n, 100, 'Hundred')
    if n < LAKH:
        return _group(n, THOUSAND, 'Thousand')
    if n < CRORE:
        return _group(n, LAKH, 'Lakh')
    return _group(n, CRORE, 'Crore')


def to_decimal(amount: Union[Decimal, int, float, str]) -> Decimal:
    """Coerce a numeric amount to Decimal, rejecting anything non-finite"""

    if isinstance(amount, bool):
        raise InvalidAmount(amount, "boolean is not an amount")
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, float):
        if not math.isfinite(amount):
            raise InvalidAmount(amount, "amount must be finite")
        value = Decimal(str(amount))
    elif isinstance(amount, (int, str)):
        try:
            value = Decimal(str(amount))
        except InvalidOperation:
            raise InvalidAmount(amount, "amount is not numeric")
    else:
        raise InvalidAmount(amount, "amount is not numeric")

    if not value.is_finite():
        raise InvalidAmount(amount, "amount must be finite")
    return value


def split_rupees_paisa(amount) -> Tuple[int, int]:
    """
    Split an amount into (rupees, paisa)

    Paisa is round((amount - floor(amount)) * 100), half-up. A fraction
    that rounds to 100 paisa carries into the rupees: 10.995 -> (11, 0).
    """
    value = to_decimal(amount)
    if value < 0:
        raise InvalidAmount(amount, "amount cannot be negative")
    if value > MAX_WORDS_AMOUNT:
        raise InvalidAmount(amount, f"amount exceeds {MAX_WORDS_AMOUNT}")

    rupees = int(value // 1)
    paisa = int(((value - rupees) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    if paisa == 100:
        rupees += 1
        paisa = 0
    return rupees, paisa


def amount_to_words(amount) -> str:
    """
    Format an amount as it is printed on the invoice

    Examples:
        >>> amount_to_words(3000)
        'Three Thousand Rupees only'
        >>> amount_to_words(Decimal('1250.50'))
        'One Thousand Two Hundred Fifty Rupees and Fifty Paisa only'
    """
    rupees, paisa = split_rupees_paisa(amount)

    words = f"{number_to_words(rupees)} Rupees"
    if paisa > 0:
        words += f" and {number_to_words(paisa)} Paisa"
    return words + " only"
