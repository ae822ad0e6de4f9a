"""Upper/lower body balance from set volume per broad muscle category."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Sequence, Union

from coachfit.aggregation import local_day
from coachfit.constants import (
    IMBALANCE_RATIO,
    MUSCLE_CATEGORIES,
    MUSCLE_CATEGORY_KEYWORDS,
    MUSCLE_WINDOW_DAYS,
    OTHER_CATEGORY,
)
from coachfit.models import MuscleBucketVolume, WorkoutRecord


class BalanceStatus(Enum):
    BALANCED = "balanced"
    LOWER_BODY_LAGGING = "lower body lagging"
    UPPER_BODY_LAGGING = "upper body lagging"
    INSUFFICIENT_DATA = "insufficient data"


def categorize_muscle_group(muscle_group: str | None) -> str:
    """
    Map a free-text muscle group onto one of the fixed categories.

    Matching is a case-insensitive substring check. Strings that match no
    category, or match more than one, are reported as Other.
    """
    if not muscle_group:
        return OTHER_CATEGORY
    text = muscle_group.lower()
    matches = [
        category
        for category, keywords in MUSCLE_CATEGORY_KEYWORDS.items()
        if any(keyword in text for keyword in keywords)
    ]
    return matches[0] if len(matches) == 1 else OTHER_CATEGORY


def muscle_volume_by_category(
    records: Sequence[WorkoutRecord],
    reference: Union[datetime, date],
    window_days: int = MUSCLE_WINDOW_DAYS,
) -> List[MuscleBucketVolume]:
    """Set counts per category for records in the trailing window, in fixed category order."""
    today = local_day(reference, reference)
    start = today - timedelta(days=window_days - 1)
    volumes = {category: MuscleBucketVolume(category=category) for category in MUSCLE_CATEGORIES}
    for record in records:
        day = local_day(record.date, reference)
        if day < start or day > today:
            continue
        for item in record.items:
            volumes[categorize_muscle_group(item.muscle_group)].set_count += len(item.sets)
    return list(volumes.values())


def classify_balance(
    volumes: Sequence[MuscleBucketVolume],
    imbalance_ratio: float = IMBALANCE_RATIO,
) -> Dict[str, Any]:
    """
    Flag a lagging half of the body.

    The rule is only evaluated when upper + lower volume is non-zero, so an
    empty window is reported as insufficient data rather than an imbalance.
    """
    by_category = {v.category: v.set_count for v in volumes}
    upper = by_category.get("Upper Body", 0)
    lower = by_category.get("Lower Body", 0)

    if upper + lower == 0:
        status = BalanceStatus.INSUFFICIENT_DATA
    elif lower < upper * imbalance_ratio:
        status = BalanceStatus.LOWER_BODY_LAGGING
    elif upper < lower * imbalance_ratio:
        status = BalanceStatus.UPPER_BODY_LAGGING
    else:
        status = BalanceStatus.BALANCED

    return {
        "status": status,
        "imbalanced": status in (BalanceStatus.LOWER_BODY_LAGGING, BalanceStatus.UPPER_BODY_LAGGING),
        "volumes": [v.to_dict() for v in volumes],
        "total_sets": sum(by_category.values()),
    }
