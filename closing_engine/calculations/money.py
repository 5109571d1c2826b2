"""Fixed-point Decimal helpers.

Amounts are kept to the cent, rates to three places and percentages to two.
Rounding is half-even, the convention of the accounting system the figures
are reconciled against.
"""

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Iterable, Union

Numeric = Union[int, float, str, Decimal]

ZERO = Decimal("0")
HUNDRED = Decimal("100")
DAYS_PER_YEAR = Decimal("365")

MONEY_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.001")
PERCENT_PLACES = Decimal("0.01")


def to_decimal(value: Numeric) -> Decimal:
    """Convert to Decimal, going through ``str`` for floats to keep their repr."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def money(value: Numeric) -> Decimal:
    """Round to cents.

    >>> money("371.9178")
    Decimal('371.92')
    """
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_EVEN)


def rate(value: Numeric) -> Decimal:
    return to_decimal(value).quantize(RATE_PLACES, rounding=ROUND_HALF_EVEN)


def percent(value: Numeric) -> Decimal:
    return to_decimal(value).quantize(PERCENT_PLACES, rounding=ROUND_HALF_EVEN)


def percent_of(part: Numeric, whole: Numeric) -> Decimal:
    """``part / whole * 100`` to two places; zero when ``whole`` is not positive."""
    whole = to_decimal(whole)
    if whole <= 0:
        return ZERO
    return percent(to_decimal(part) / whole * HUNDRED)


def total(values: Iterable[Decimal]) -> Decimal:
    """Decimal sum that is ``Decimal('0')`` for an empty iterable."""
    return sum(values, ZERO)
