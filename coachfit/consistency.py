"""Weekly training-frequency consistency score."""

from __future__ import annotations

from enum import Enum
from statistics import mean
from typing import Any, Dict, Sequence

from coachfit.constants import (
    CONSISTENCY_DISPLAY_CAP,
    CONSISTENCY_RAW_SCORE_CAP,
    INCONSISTENT_SCORE,
    TARGET_WORKOUTS_PER_WEEK,
    VERY_CONSISTENT_SCORE,
)


class ConsistencyLabel(Enum):
    VERY_CONSISTENT = "very consistent"
    MODERATELY_CONSISTENT = "moderately consistent"
    INCONSISTENT = "inconsistent"
    INSUFFICIENT_DATA = "insufficient data"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if value < 0:
        return -round_half_up(-value)
    return int(value + 0.5)


def label_for_score(
    score: int,
    very_consistent_score: int = VERY_CONSISTENT_SCORE,
    inconsistent_score: int = INCONSISTENT_SCORE,
) -> ConsistencyLabel:
    if score >= very_consistent_score:
        return ConsistencyLabel.VERY_CONSISTENT
    if score <= inconsistent_score:
        return ConsistencyLabel.INCONSISTENT
    return ConsistencyLabel.MODERATELY_CONSISTENT


def analyze_consistency(
    weekly_counts: Sequence[int],
    target_per_week: float = TARGET_WORKOUTS_PER_WEEK,
    raw_cap: float = CONSISTENCY_RAW_SCORE_CAP,
    very_consistent_score: int = VERY_CONSISTENT_SCORE,
    inconsistent_score: int = INCONSISTENT_SCORE,
) -> Dict[str, Any]:
    """
    Score how regularly the user trains against a weekly target.

    Args:
        weekly_counts: Workouts per week for the trailing window.
        target_per_week: Workouts/week that earns a score of 100.
        raw_cap: Upper clamp on the raw score before the 0-100 display clamp.
        very_consistent_score: Scores at or above this are "very consistent".
        inconsistent_score: Scores at or below this are "inconsistent".

    Returns:
        A dictionary containing:
            'score': int in [0, 100], or None when every week is empty.
            'raw_score': float in [0, raw_cap], or None.
            'label': ConsistencyLabel.
            'avg_per_week': float.
            'weeks': int - number of weeks considered.
            'target_per_week': float.
    """
    counts = [max(0, int(c)) for c in weekly_counts]
    avg_per_week = mean(counts) if counts else 0.0
    result = {
        "score": None,
        "raw_score": None,
        "label": ConsistencyLabel.INSUFFICIENT_DATA,
        "avg_per_week": round(float(avg_per_week), 2),
        "weeks": len(counts),
        "target_per_week": float(target_per_week),
    }
    if not any(counts) or target_per_week <= 0:
        return result

    raw_score = max(0.0, min((avg_per_week / target_per_week) * 100.0, raw_cap))
    score = round_half_up(max(0.0, min(raw_score, CONSISTENCY_DISPLAY_CAP)))

    result["raw_score"] = round(raw_score, 2)
    result["score"] = score
    result["label"] = label_for_score(score, very_consistent_score, inconsistent_score)
    return result
