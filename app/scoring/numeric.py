"""
Rounding and ratio helpers shared by the factor calculators.

All rounding is half-up (2.5 -> 3, 59.5 -> 60), not Python's banker's
rounding, so scores on a .5 boundary land the same way as the snapshots
already stored.
"""
from __future__ import annotations

import math
from datetime import datetime

SECONDS_PER_DAY = 86_400


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round_score(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent_change(current: float, previous: float) -> float:
    """% change vs previous; 0 when there is no previous activity."""
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def whole_days_between(now: datetime, then: datetime) -> int:
    return math.floor((now - then).total_seconds() / SECONDS_PER_DAY)
