"""
Currency-Precision Arithmetic

Every monetary sum is rounded to the nearest hundredth after each operation
(ROUND_HALF_UP, i.e. half away from zero), so representation error can never
accumulate: add(0.1, 0.2) is exactly Decimal("0.30").
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

Number = Union[int, float, str, Decimal]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Number) -> Decimal:
    """Convert to Decimal without picking up binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Booleans are not amounts")
    if isinstance(value, float):
        # repr gives the shortest round-tripping form: 0.1 -> "0.1"
        return Decimal(repr(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a monetary amount: {value!r}")


def to_cents(value: Number) -> Decimal:
    """Round to the nearest hundredth, half away from zero."""
    result = to_decimal(value)
    if not result.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return result.quantize(CENT, rounding=ROUND_HALF_UP)


def add(a: Number, b: Number) -> Decimal:
    return to_cents(to_decimal(a) + to_decimal(b))


def subtract(a: Number, b: Number) -> Decimal:
    return to_cents(to_decimal(a) - to_decimal(b))


def total(values) -> Decimal:
    """Cent-precision sum of an iterable of amounts."""
    result = ZERO
    for value in values:
        result = add(result, value)
    return result
