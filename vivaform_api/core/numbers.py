from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[int, float]


# PUBLIC_INTERFACE
def round_half_up(value: Number, digits: int = 0) -> Number:
    """
    Round with halves going up, as scores, macros and averages are shown to users.

    The builtin round() sends halves to the even neighbour (70.5 -> 70), which
    makes health scores and gram targets one lower than the web client expects.
    With digits=0 the result is an int and follows floor(x + 0.5), so -2.5 -> -2.
    """
    if digits == 0:
        return int(math.floor(value + 0.5))
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
