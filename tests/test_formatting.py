"""
Tests for printed value formatting

Run with: pytest tests/test_formatting.py -v
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from utils.formatting import (
    CurrencyFormatter, format_date, format_percent, group_indian, group_western, or_na,
)


class TestCurrencyFormatter:
    """One formatter per document"""

    def test_rupees(self):
        money = CurrencyFormatter("INR", "en_IN")

        assert money(Decimal("3000")) == "₹3,000.00"
        assert money(Decimal("1234567.891")) == "₹12,34,567.89"
        assert money(Decimal("0.005")) == "₹0.01"

    def test_western_grouping(self):
        money = CurrencyFormatter("USD", "en_US")

        assert money(Decimal("1234567.5")) == "$1,234,567.50"

    def test_negative(self):
        assert CurrencyFormatter()(Decimal("-500")) == "-₹500.00"

    def test_missing_amount_is_zero(self):
        assert CurrencyFormatter()(None) == "₹0.00"

    def test_unknown_currency_uses_code(self):
        assert CurrencyFormatter("jpy", "en_US")(10) == "JPY 10.00"

    def test_number_without_symbol(self):
        assert CurrencyFormatter().number("100000") == "1,00,000.00"


class TestGrouping:

    @pytest.mark.parametrize("digits, expected", [
        ("0", "0"),
        ("999", "999"),
        ("1000", "1,000"),
        ("100000", "1,00,000"),
        ("12345678", "1,23,45,678"),
    ])
    def test_indian(self, digits, expected):
        assert group_indian(digits) == expected

    def test_western(self):
        assert group_western("12345678") == "12,345,678"


class TestSmallFormatters:

    def test_format_date(self):
        assert format_date(date(2024, 9, 15)) == "15 Sep 2024"
        assert format_date(datetime(2024, 1, 2, 10, 30)) == "02 Jan 2024"
        assert format_date("2024-09-15T10:00:00") == "15 Sep 2024"

    def test_format_date_missing(self):
        assert format_date(None) == "N/A"
        assert format_date("") == "N/A"

    def test_format_percent(self):
        assert format_percent(Decimal("0.09")) == "9%"
        assert format_percent(Decimal("0.025")) == "2.5%"
        assert format_percent(Decimal("0")) == "0%"

    def test_or_na(self):
        assert or_na(None) == "N/A"
        assert or_na("   ") == "N/A"
        assert or_na(" Pune ") == "Pune"
        assert or_na(0) == "0"


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
