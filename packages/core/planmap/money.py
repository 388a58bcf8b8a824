"""Price string parsing — bundle prices are stored as free-form currency text."""

from __future__ import annotations

import re

_STRIP_CHARS = re.compile(r"[$₹,]")
_LEADING_NUMBER = re.compile(r"^\d+(?:\.\d+)?")

CURRENCY_SYMBOLS = {"USD": "$", "INR": "₹"}


def parse_money(value: str | None) -> float:
    """Return the leading numeric magnitude of a price string, or 0.0.

    "$52.00/user" -> 52.0, "₹4,500" -> 4500.0, "Contact us for E5 pricing" -> 0.0
    """
    if not value or not isinstance(value, str):
        return 0.0
    cleaned = _STRIP_CHARS.sub("", value).strip()
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0
    return float(match.group(0))


def format_money(amount: float, currency: str = "USD") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), "")
    return f"{symbol}{amount:,.2f}"
