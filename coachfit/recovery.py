"""
Recovery classification from the change in training load between the last
seven days and the seven days before them.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Sequence

from coachfit.constants import RECOVERY_HIGH_RATIO, RECOVERY_LOW_RATIO, RECOVERY_WINDOW_DAYS
from coachfit.training_load import split_recent_load


class RecoveryStatus(Enum):
    NOT_ENOUGH_DATA = "not enough recent training data"
    RECENTLY_STARTED = "recently started training, increase gradually"
    LOAD_MUCH_HIGHER = "load much higher than prior week, consider rest"
    LOAD_MUCH_LOWER = "load much lower, likely deload/recovery"
    BALANCED = "load stable, recovery balanced"


def classify_recovery(
    daily_loads: Sequence[float],
    window_days: int = RECOVERY_WINDOW_DAYS,
    high_ratio: float = RECOVERY_HIGH_RATIO,
    low_ratio: float = RECOVERY_LOW_RATIO,
) -> Dict[str, Any]:
    """
    Compare the trailing window's load against the window before it.

    Args:
        daily_loads: Daily load series, oldest first. Needs at least
                     ``2 * window_days`` entries.
        window_days: Length of each compared window.
        high_ratio: last/prev ratio at or above which load is "much higher".
        low_ratio: last/prev ratio at or below which load is "much lower".

    Returns:
        A dictionary containing:
            'status': RecoveryStatus.
            'last7_load': float or None.
            'prev7_load': float or None.
            'ratio': float or None - None when prev7 is zero.
            'delta_percent': float or None - same guard as ratio.
    """
    result = {
        "status": RecoveryStatus.NOT_ENOUGH_DATA,
        "last7_load": None,
        "prev7_load": None,
        "ratio": None,
        "delta_percent": None,
    }
    windows = split_recent_load(daily_loads, window_days)
    if windows is None:
        return result

    last_sum = max(0.0, windows["last_sum"])
    prev_sum = max(0.0, windows["prev_sum"])
    result["last7_load"] = round(last_sum, 2)
    result["prev7_load"] = round(prev_sum, 2)

    if last_sum == 0 and prev_sum == 0:
        return result
    if prev_sum == 0:
        result["status"] = RecoveryStatus.RECENTLY_STARTED
        return result

    ratio = last_sum / prev_sum
    result["ratio"] = round(ratio, 4)
    result["delta_percent"] = round((last_sum - prev_sum) / prev_sum * 100.0, 1)
    if ratio >= high_ratio:
        result["status"] = RecoveryStatus.LOAD_MUCH_HIGHER
    elif ratio <= low_ratio:
        result["status"] = RecoveryStatus.LOAD_MUCH_LOWER
    else:
        result["status"] = RecoveryStatus.BALANCED
    return result
