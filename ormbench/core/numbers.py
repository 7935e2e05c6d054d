"""
Numeric helpers shared by the comparator, the historical tracker and the
projection builder.
"""
from __future__ import annotations

import statistics
from typing import Iterable

from .models import Trend

# A change within +/- this many percent is "stable".
TREND_THRESHOLD_PCT = 5.0
# A change beyond this many percent is "significant".
SIGNIFICANT_CHANGE_PCT = 10.0


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean; 0.0 for an empty input."""
    values = list(values)
    return statistics.mean(values) if values else 0.0


def percent_change(old: float, new: float) -> float:
    """
    Signed change from *old* to *new* in percent of *old* (0.0 when old is 0).

    Rounded to nine decimals so that values sitting exactly on a threshold
    (110 vs 100 is 10%) compare as the threshold itself.
    """
    if not old:
        return 0.0
    return round((new - old) / old * 100, 9)


def latency_trend(change_pct: float, threshold: float = TREND_THRESHOLD_PCT) -> Trend:
    """Lower latency is better."""
    if change_pct < -threshold:
        return Trend.IMPROVING
    if change_pct > threshold:
        return Trend.DEGRADING
    return Trend.STABLE


def throughput_trend(change_pct: float, threshold: float = TREND_THRESHOLD_PCT) -> Trend:
    """Higher throughput is better."""
    return latency_trend(-change_pct, threshold)
