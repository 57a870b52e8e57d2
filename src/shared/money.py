"""Fixed-point money helpers.

Every monetary figure in the core is a ``Decimal`` with two places. Rounding
is round-half-up and is applied once, when a figure is finalized.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from pydantic import BeforeValidator

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    """Convert ints, strings and floats to an exact ``Decimal``.

    Floats go through ``str`` so that ``99.99`` becomes ``Decimal("99.99")``
    rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def to_money(value) -> Decimal:
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


Money = Annotated[Decimal, BeforeValidator(to_money)]
