"""Monetary rounding helpers."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

CENT = Decimal("0.01")


def round_cents(value: float) -> float:
    """Round to cents, halves away from zero."""
    return float(Decimal(repr(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def sum_cents(values: Iterable[float]) -> float:
    return round_cents(sum(values))
