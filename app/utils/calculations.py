from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, Decimal]


def round_half_up(value: Number) -> int:
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int) -> int:
    """Integer percentage of ``part`` over ``whole``, 0 when ``whole`` is 0.

    Shared by the enrollment counters and the progress report so both round
    identically.
    """
    if whole <= 0:
        return 0
    return round_half_up(Decimal(part) * 100 / Decimal(whole))
