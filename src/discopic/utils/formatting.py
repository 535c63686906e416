"""Display formatting for prices and percentages."""

from discopic.core.types import ProfitClass


def format_price(price: float) -> str:
    """
    Format a price with precision that grows as magnitude shrinks.

    Examples:
        >>> format_price(42150.5)
        '42,150.50'
        >>> format_price(2.45)
        '2.45'
        >>> format_price(1.23456)
        '1.2346'
        >>> format_price(0.32)
        '0.3200'
        >>> format_price(0.0000251)
        '0.0000251'
    """
    if price >= 1000:
        return f"{price:,.2f}"
    if price >= 1:
        return _trim_decimals(f"{price:,.4f}", min_decimals=2)
    return _trim_decimals(f"{price:,.8f}", min_decimals=4)


def _trim_decimals(text: str, min_decimals: int) -> str:
    """Strip trailing zeros but keep at least ``min_decimals`` places."""
    whole, _, decimals = text.partition(".")
    decimals = decimals.rstrip("0")
    if len(decimals) < min_decimals:
        decimals = decimals.ljust(min_decimals, "0")
    return f"{whole}.{decimals}"


def format_percent(percent: float) -> str:
    """Format a percentage with two decimals, e.g. ``'0.44%'``."""
    return f"{percent:.2f}%"


def profit_class(profit_pct: float) -> ProfitClass:
    """
    Bucket a profit percentage.

    >= 1% is positive, 0-1% is neutral, below zero is negative.
    """
    if profit_pct >= 1:
        return ProfitClass.POSITIVE
    if profit_pct >= 0:
        return ProfitClass.NEUTRAL
    return ProfitClass.NEGATIVE
