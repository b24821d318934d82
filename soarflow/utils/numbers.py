from __future__ import annotations

import math


def rounded_percent(part: int, whole: int) -> int:
    """Return ``part / whole`` as a percentage rounded half up.

    Integer arithmetic keeps ``1/8`` at 13 rather than the banker's 12.
    """
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
