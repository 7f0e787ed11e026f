"""
Domain: money values.

Balances and prices are Decimals quantized to cents. Floats never enter the
ledger; they are converted through ``str`` first.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyLike = Union[Decimal, int, float, str]


def to_money(value: MoneyLike) -> Decimal:
    """Convert ``value`` into a cent-quantized Decimal."""

    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a monetary amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        # More digits than the decimal context can hold at cent precision.
        raise ValueError(f"Monetary amount out of range: {value!r}") from e


def has_subcent_precision(value: Decimal) -> bool:
    """Raises InvalidOperation when ``value`` is too large to quantize."""
    return value != value.quantize(CENT)
