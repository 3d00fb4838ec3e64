"""
Money helpers

All currency amounts in the checkout core are Decimals quantized to the cent.
Every arithmetic helper rounds through the same cent path, so repeated
additions never drift the way binary floats do.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

Money = Decimal
Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def round_money(value: Number) -> Money:
    """Round to the nearest cent, halves away from zero."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        # str() keeps 0.1 as 0.1 instead of 0.1000000000000000055...
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value: Number) -> int:
    return int(round_money(value) * 100)


def from_cents(cents: int) -> Money:
    return round_money(Decimal(cents) / Decimal(100))


def add(a: Number, b: Number) -> Money:
    return round_money(round_money(a) + round_money(b))


def subtract(a: Number, b: Number) -> Money:
    return round_money(round_money(a) - round_money(b))


def multiply_by_scalar(value: Number, factor: Number) -> Money:
    return round_money(round_money(value) * Decimal(str(factor)))


def sum_money(values: Iterable[Number]) -> Money:
    total = ZERO
    for value in values:
        total = add(total, value)
    return total


def split_price(price: Number, parts: int) -> Money:
    """
    Price of one part when a shipment price is split evenly.

    Each part is rounded on its own, so the parts may add up to a cent per
    extra part less (or more) than the original price. Backend reconciliation
    expects exactly these per-part values.
    """
    if parts < 1:
        raise ValueError(f"parts must be >= 1, got {parts}")
    return round_money(round_money(price) / Decimal(parts))


def free_shipping_remaining(subtotal: Number, threshold: Number) -> Money:
    """How much more has to be spent before the threshold is met (never negative)."""
    remaining = subtract(threshold, subtotal)
    return remaining if remaining > ZERO else ZERO
