"""Display formatting for the presentation boundary.

Aggregates stay unrounded; these helpers are applied only when a value is
rendered (CLI tables, exported reports).
"""

from __future__ import annotations

from typing import Any

from studio_analytics.models import to_number

CURRENCY_SYMBOL = "₹"


def format_number(value: Any, decimals: int = 0) -> str:
    return f"{to_number(value):,.{decimals}f}"


def format_currency(value: Any, symbol: str = CURRENCY_SYMBOL, decimals: int = 0) -> str:
    """Format a money amount, e.g. ``₹1,234`` or ``-₹50``."""
    amount = to_number(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.{decimals}f}"


def format_percent(value: Any, decimals: int = 1) -> str:
    return f"{to_number(value):.{decimals}f}%"
