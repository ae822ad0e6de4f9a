"""Linear trend of weekly workout counts and a one-week projection."""

from __future__ import annotations

from enum import Enum
from statistics import mean
from typing import Any, Dict, Sequence

from coachfit.consistency import round_half_up
from coachfit.constants import TREND_SLOPE_THRESHOLD


class TrendDirection(Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


def calculate_trend_slope(values: Sequence[float]) -> float:
    """Return slope of a simple linear regression y = ax + b over x = 0..n-1."""
    n = len(values)
    if n < 2:
        return 0.0
    x_vals = range(n)
    x_mean = mean(x_vals)
    y_mean = mean(values)
    num = sum((x - x_mean) * (y - y_mean) for x, y in zip(x_vals, values))
    den = sum((x - x_mean) ** 2 for x in x_vals)
    return num / den if den else 0.0


def classify_slope(slope: float, threshold: float = TREND_SLOPE_THRESHOLD) -> TrendDirection:
    if slope > threshold:
        return TrendDirection.INCREASING
    if slope < -threshold:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


def estimate_trend(
    weekly_counts: Sequence[int],
    threshold: float = TREND_SLOPE_THRESHOLD,
) -> Dict[str, Any]:
    """
    Fit a least-squares line to weekly counts (oldest first) and extrapolate.

    This is a local linear extrapolation with no error model; the projection
    is a rough next-week guess, not a forecast.

    Returns:
        A dictionary containing:
            'slope': float - workouts/week change per week.
            'direction': TrendDirection.
            'projected_next_week': int - max(0, round(last + slope)).
            'last_week_count': int.
    """
    counts = [float(c) for c in weekly_counts]
    slope = calculate_trend_slope(counts)
    last = counts[-1] if counts else 0.0
    return {
        "slope": round(slope, 4),
        "direction": classify_slope(slope, threshold),
        "projected_next_week": max(0, round_half_up(last + slope)),
        "last_week_count": int(last),
    }
