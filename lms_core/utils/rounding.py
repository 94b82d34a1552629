from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float]


def percent_half_up(part: Number, whole: Number) -> int:
    """
    Percentage of ``part`` in ``whole`` rounded half-up to an integer.

    round() would round half to even (round(12.5) == 12); scores round half up.
    Returns 0 when ``whole`` is not positive.
    """
    if not whole or whole <= 0:
        return 0
    ratio = Decimal(str(part)) * 100 / Decimal(str(whole))
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round_half_up(value: Number) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
