"""Tests for price string parsing and formatting."""

from __future__ import annotations

import pytest
from planmap.money import format_money, parse_money


class TestParseMoney:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("$52.00", 52.0),
            ("$52.00/user", 52.0),
            ("₹4,500", 4500.0),
            ("₹1,00,000", 100000.0),
            ("  $6  ", 6.0),
            ("12.5 per month", 12.5),
        ],
    )
    def test_leading_number(self, text, expected):
        assert parse_money(text) == expected

    @pytest.mark.parametrize("text", ["Contact us for E5 pricing", "", None, "free", "$"])
    def test_unparseable_is_zero(self, text):
        assert parse_money(text) == 0.0

    def test_non_string_is_zero(self):
        assert parse_money(42) == 0.0


class TestFormatMoney:
    def test_usd(self):
        assert format_money(1234.5, "USD") == "$1,234.50"

    def test_inr(self):
        assert format_money(4735, "inr") == "₹4,735.00"

    def test_unknown_currency_has_no_symbol(self):
        assert format_money(3, "EUR") == "3.00"
