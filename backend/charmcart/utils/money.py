from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]

CENT = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    """Exact decimal for a price; floats go through their shortest repr."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize(value: Number) -> Decimal:
    """Round to the currency minor unit, half away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round2(value: Number) -> float:
    """Round to two decimal places and return a float."""
    return float(quantize(value))
