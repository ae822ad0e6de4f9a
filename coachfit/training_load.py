"""
Training load heuristic: reps x (weight, or a bodyweight factor) x (RPE, or a default).

The value is unitless. It rewards high-rep, high-effort work and is only meant
for comparing a lifter's weeks against each other.

The weight factor is max(weight, bodyweight factor) rather than "weight when
non-zero". The two agree except for weights between 0 and the factor, where
a plain weight would score below an unloaded set and break monotonicity.
"""
from __future__ import annotations

from typing import Dict, List, Sequence

from coachfit.constants import BODYWEIGHT_LOAD_FACTOR, DEFAULT_RPE
from coachfit.models import DailyBucket, SetEntry, WeeklyBucket, WorkoutRecord


def set_load(
    entry: SetEntry,
    default_rpe: float = DEFAULT_RPE,
    bodyweight_factor: float = BODYWEIGHT_LOAD_FACTOR,
) -> float:
    """
    Load of a single set.

    Args:
        entry: The logged set.
        default_rpe: Effort assumed when the set carries no RPE.
        bodyweight_factor: Weight stand-in for bodyweight sets (weight == 0).

    Returns:
        reps x weight_factor x rpe, never negative.
    """
    reps = max(0, entry.reps or 0)
    weight = max(0.0, float(entry.weight or 0.0))
    rpe = default_rpe if entry.rpe is None else max(0.0, float(entry.rpe))
    # Light loads never count for less than a bodyweight set, so the result
    # stays non-decreasing in weight.
    weight_factor = max(weight, bodyweight_factor)
    return reps * weight_factor * rpe


def session_load(
    record: WorkoutRecord,
    default_rpe: float = DEFAULT_RPE,
    bodyweight_factor: float = BODYWEIGHT_LOAD_FACTOR,
) -> float:
    """Sum of set loads over every item of a workout."""
    return sum(
        set_load(entry, default_rpe, bodyweight_factor)
        for item in record.items
        for entry in item.sets
    )


def daily_load_series(buckets: Sequence[DailyBucket]) -> List[float]:
    """Loads of the given daily buckets, oldest first."""
    return [bucket.load for bucket in buckets]


def weekly_load_series(weeks: Sequence[WeeklyBucket]) -> List[float]:
    return [week.load for week in weeks]


def split_recent_load(daily_loads: Sequence[float], window_days: int) -> Dict[str, float] | None:
    """
    Split the tail of a daily load series into the last window and the one before.

    Returns None when the series is shorter than two windows.
    """
    if window_days <= 0 or len(daily_loads) < window_days * 2:
        return None
    tail = list(daily_loads[-window_days * 2:])
    return {
        "prev_sum": float(sum(tail[:window_days])),
        "last_sum": float(sum(tail[window_days:])),
    }
