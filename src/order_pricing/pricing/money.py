"""Currency rounding and summation helpers.

Amounts are plain floats and stay unrounded through every computation step.
Rounding to minor units happens once, when a value is displayed.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

CURRENCY_PLACES = 2


def round_money(amount: float, places: int = CURRENCY_PLACES) -> float:
    """Round half-up to ``places`` decimals for display.

    ``Decimal(repr(amount))`` is used instead of ``round()`` so that values
    such as 2.675 round to 2.68 the way a receipt reader expects.
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(float(amount))).quantize(quantum, rounding=ROUND_HALF_UP))


def format_money(amount: float, places: int = CURRENCY_PLACES) -> str:
    """Format an amount as ``$1,234.56``."""
    rounded = round_money(amount, places)
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,.{places}f}"


def sum_amounts(values: Iterable[float]) -> float:
    """Sum amounts without accumulating float error."""
    return math.fsum(values)
