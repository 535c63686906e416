"""
Percentage arithmetic for spread calculations.

Prices are plain floats; fee and profit figures are percentages
(0.1 means 0.1%), never fractions.
"""

from collections.abc import Iterable
from typing import Final


# Epsilon for floating point comparisons
EPSILON: Final[float] = 1e-10


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default on division by zero.

    Args:
        numerator: The dividend.
        denominator: The divisor.
        default: Value to return if denominator is zero.

    Returns:
        Result of division or default value.
    """
    if abs(denominator) < EPSILON:
        return default
    return numerator / denominator


def pct_change(start: float, end: float) -> float:
    """
    Percentage change from ``start`` to ``end``.

    Example:
        >>> round(pct_change(42000.0, 42480.0), 4)
        1.1429
    """
    return (end - start) / start * 100.0


def apply_fee(amount: float, fee_pct: float) -> tuple[float, float]:
    """
    Deduct a percentage fee from an amount.

    Returns:
        Tuple of (amount after fee, fee charged).

    Example:
        >>> apply_fee(1000.0, 1.0)
        (990.0, 10.0)
    """
    fee = amount * fee_pct / 100.0
    return amount - fee, fee


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean, 0.0 for an empty input."""
    total = 0.0
    count = 0
    for value in values:
        total += value
        count += 1
    return safe_divide(total, count)
