"""
Business Rule Policies

The fallback chains the analytics depend on live here as named functions so
each can be tested on its own:

- numbers that are not finite count as 0
- a missing gross amount is rebuilt from net + tax + deductions
- a currency code that is not three letters displays as USD

None of these policies modify an entry. They only decide how it is read.
"""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from salary_tracker.models.entry import FinancialEntry, coerce_number


DEFAULT_CURRENCY = "USD"

CURRENCY_CODE_PATTERN = re.compile(r"[A-Z]{3}")

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "CNY": "CN¥",
    "KRW": "₩",
    "CAD": "CA$",
    "AUD": "A$",
    "NZD": "NZ$",
    "HKD": "HK$",
    "MXN": "MX$",
    "BRL": "R$",
    "ILS": "₪",
    "VND": "₫",
    "PHP": "₱",
}

_COMPACT_STEPS = (
    (Decimal("1e12"), "T"),
    (Decimal("1e9"), "B"),
    (Decimal("1e6"), "M"),
    (Decimal("1e3"), "K"),
)


def safe_number(value: Any) -> float:
    """A finite float, with NaN, infinity, None and junk read as 0."""
    return coerce_number(value, default=0.0)


def resolve_net(entry: FinancialEntry) -> float:
    return safe_number(entry.amount)


def resolve_gross(entry: FinancialEntry) -> float:
    """
    Gross pay for an entry.

    An explicit grossAmount wins, even when it is 0. When it is absent the
    gross is rebuilt additively from net + tax + deductions rather than
    assumed equal to the net.
    """
    if entry.gross_amount is not None:
        return safe_number(entry.gross_amount)
    return (
        safe_number(entry.amount)
        + safe_number(entry.tax)
        + safe_number(entry.deductions)
    )


def resolve_leakage(entry: FinancialEntry) -> float:
    """Everything between gross and net for one entry."""
    return resolve_gross(entry) - resolve_net(entry)


def resolve_currency(code: Any, default: str = DEFAULT_CURRENCY) -> str:
    """
    Currency code to display with.

    The code is upper-cased and must then be exactly three letters A-Z.
    Anything else (missing, wrong length, digits) silently becomes the default.
    """
    if not isinstance(code, str):
        return default
    upper = code.upper()
    if CURRENCY_CODE_PATTERN.fullmatch(upper):
        return upper
    return default


def _round_half_up(value: Decimal, places: int = 0) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def format_currency(value: Any, code: Any = DEFAULT_CURRENCY, compact: bool = False) -> str:
    """
    Render an amount the way an en-US currency formatter would.

    Whole units only. With compact=True large values shorten to K/M/B/T
    (one decimal below 10 units of the suffix, none above).

    Examples:
        >>> format_currency(1234.5, "usd")
        '$1,235'
        >>> format_currency(1234567, "GBP", compact=True)
        '£1.2M'
        >>> format_currency(50, "us")
        '$50'
    """
    currency = resolve_currency(code)
    number = Decimal(str(safe_number(value)))
    sign = "-" if number < 0 else ""
    magnitude = abs(number)

    text = None
    if compact:
        for threshold, suffix in _COMPACT_STEPS:
            if magnitude >= threshold:
                scaled = magnitude / threshold
                places = 1 if scaled < 10 else 0
                rounded = _round_half_up(scaled, places)
                shown = f"{rounded:f}"
                if "." in shown:
                    shown = shown.rstrip("0").rstrip(".")
                text = f"{shown}{suffix}"
                break

    if text is None:
        text = f"{_round_half_up(magnitude):,f}"

    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{sign}{symbol}{text}"
    return f"{sign}{currency} {text}"
