"""Decimal helpers for monetary amounts."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from core.config import settings

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0")
EPSILON = Decimal(str(settings.balance_epsilon))


def d(val) -> Decimal:
    """Coerce incoming values to Decimal safely (None counts as zero)."""
    if val is None:
        return ZERO
    if isinstance(val, Decimal):
        return val
    return Decimal(str(val))


def parse_amount(val) -> Optional[Decimal]:
    """Parse user input into a Decimal, None when it is not numeric."""
    if val is None or isinstance(val, bool):
        return None
    try:
        amount = d(val)
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def quantize2(amount) -> Decimal:
    return d(amount).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def is_zero(amount) -> bool:
    """True when the amount is within the balance tolerance of zero."""
    return abs(d(amount)) <= EPSILON


def present(amount) -> float:
    """Round to cents for the JSON boundary."""
    return float(quantize2(amount))


def has_cents_precision(amount) -> bool:
    """True when the amount needs no more than two decimal places, so storage never rounds it."""
    return d(amount) == quantize2(amount)
