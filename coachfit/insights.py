"""
Composition of the insight report.

build_insight_report runs the whole pipeline on one snapshot: aggregation,
load series, consistency, trend, recovery and muscle balance, then bundles the
results with the user's most logged exercises. Everything here is a pure
function of the snapshot and the reference timestamp, apart from the optional
call to the coaching text service.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from coachfit.aggregation import (
    HistoryAggregate,
    aggregate_history,
    build_weekly_buckets,
    local_day,
    normalize_records,
)
from coachfit.config import InsightConfig
from coachfit.consistency import analyze_consistency
from coachfit.constants import EMPTY_HISTORY_RECOMMENDATION, RECENT_ACTIVITY_DAYS
from coachfit.errors import CollaboratorUnavailable
from coachfit.models import AllTimeTotals, InsightReport, enum_value
from coachfit.muscle_balance import classify_balance, muscle_volume_by_category
from coachfit.recovery import classify_recovery
from coachfit.training_load import daily_load_series
from coachfit.trend import estimate_trend

logger = logging.getLogger(__name__)

SUMMARY_TEMPLATE = (
    "Over the last {weeks} weeks you averaged {avg_per_week:.1f} workouts per week "
    "(consistency: {consistency}). Your training frequency is {trend} and next week "
    "projects to about {projection} workouts. Recovery: {recovery}. "
    "Muscle balance: {balance}."
)


def _serialize(section: Dict[str, Any]) -> Dict[str, Any]:
    return {key: enum_value(value) for key, value in section.items()}


def top_exercises(totals: AllTimeTotals, limit: int) -> List[Dict[str, Any]]:
    """Most frequently logged exercises; ties keep first-encountered order."""
    ranked = sorted(totals.exercise_frequency.items(), key=lambda kv: -kv[1])
    return [
        {"exercise_id": ex_id, "name": totals.exercise_names.get(ex_id), "count": count}
        for ex_id, count in ranked[:max(0, limit)]
    ]


def summarize_activity(aggregate: HistoryAggregate, window_days: int) -> Dict[str, Any]:
    """
    Headline counts: all-time totals, the trailing activity window, and
    per-day workout counts over the last 30 days.
    """
    totals = aggregate.totals
    recent = aggregate.daily[-window_days:] if window_days > 0 else []
    last_month = aggregate.daily[-RECENT_ACTIVITY_DAYS:]
    avg_sets = round(totals.total_sets / totals.total_workouts, 1) if totals.total_workouts else 0.0
    return {
        "total_workouts": totals.total_workouts,
        "total_sets": totals.total_sets,
        "average_sets_per_workout": avg_sets,
        "window_days": window_days,
        "workouts_in_window": sum(b.workout_count for b in recent),
        "sets_in_window": sum(b.set_count for b in recent),
        "workouts_per_day_last_30_days": {
            b.date.isoformat(): b.workout_count for b in last_month if b.workout_count
        },
        "muscle_group_frequency": dict(totals.muscle_group_frequency),
    }


def render_summary_text(report: InsightReport) -> str:
    consistency = report.consistency
    if consistency["score"] is None:
        consistency_text = consistency["label"]
    else:
        consistency_text = f"{consistency['score']}/100, {consistency['label']}"
    return SUMMARY_TEMPLATE.format(
        weeks=consistency["weeks"],
        avg_per_week=consistency["avg_per_week"],
        consistency=consistency_text,
        trend=report.trend["direction"],
        projection=report.trend["projected_next_week"],
        recovery=report.recovery["status"],
        balance=report.muscle_balance["status"],
    )


def build_coaching_payload(report: InsightReport) -> Dict[str, Any]:
    """Numeric parts of the report plus raw highlights, for the coaching text service."""
    totals = report.totals
    return {
        "reference_date": report.reference_date,
        "consistency": report.consistency,
        "trend": report.trend,
        "recovery": report.recovery,
        "muscle_balance": report.muscle_balance,
        "top_exercises": report.top_exercises,
        "weekly_load": [w["load"] for w in report.training_load["weekly"]],
        "highlights": {
            "totalWorkouts": totals["total_workouts"],
            "recentWorkoutsLast30Days": sum(totals["workouts_per_day_last_30_days"].values()),
            "averageSetsPerWorkout": totals["average_sets_per_workout"],
            "workoutsPerDayLast30Days": totals["workouts_per_day_last_30_days"],
            "muscleGroupFrequency": totals["muscle_group_frequency"],
        },
    }


def build_insight_report(
    records: Iterable[Any],
    reference: Union[datetime, date],
    config: Optional[InsightConfig] = None,
    text_service=None,
    include_summary: bool = True,
) -> InsightReport:
    """
    Derive the full insight report for one user's workout snapshot.

    Args:
        records: WorkoutRecords or plain dicts, in any order.
        reference: "Now" for the caller; its timezone defines calendar days.
        config: Thresholds and windows. Defaults to InsightConfig().
        text_service: Optional object with ``generate(payload) -> str``. Its
                      failures (CollaboratorUnavailable) leave coaching_text None.
        include_summary: Whether to fill the templated summary_text.

    Returns:
        A fully populated InsightReport. Sparse data yields sentinel labels and
        None numbers, never missing fields.
    """
    cfg = config or InsightConfig()
    aggregate = aggregate_history(
        records, reference, cfg.required_history_days, cfg.default_rpe, cfg.bodyweight_factor
    )
    weeks = build_weekly_buckets(aggregate.daily, cfg.consistency_weeks)
    weekly_counts = [w.workout_count for w in weeks]

    consistency = analyze_consistency(
        weekly_counts,
        target_per_week=cfg.target_workouts_per_week,
        raw_cap=cfg.consistency_raw_cap,
        very_consistent_score=cfg.very_consistent_score,
        inconsistent_score=cfg.inconsistent_score,
    )
    trend = estimate_trend(weekly_counts, threshold=cfg.trend_slope_threshold)
    recovery = classify_recovery(
        daily_load_series(aggregate.daily),
        window_days=cfg.recovery_window_days,
        high_ratio=cfg.recovery_high_ratio,
        low_ratio=cfg.recovery_low_ratio,
    )
    balance = classify_balance(
        muscle_volume_by_category(aggregate.records, reference, cfg.muscle_window_days),
        imbalance_ratio=cfg.imbalance_ratio,
    )

    load_days = cfg.recovery_window_days * 2
    recent_daily = aggregate.daily[-load_days:] if load_days > 0 else []

    report = InsightReport(
        reference_date=local_day(reference, reference).isoformat(),
        consistency=_serialize(consistency),
        recovery=_serialize(recovery),
        trend=_serialize(trend),
        muscle_balance=_serialize(balance),
        top_exercises=top_exercises(aggregate.totals, cfg.top_exercise_count),
        totals=summarize_activity(aggregate, cfg.activity_window_days),
        training_load={
            "daily": [b.to_dict() for b in recent_daily],
            "weekly": [w.to_dict() for w in weeks],
        },
    )
    if include_summary:
        report.summary_text = render_summary_text(report)

    if text_service is not None:
        try:
            report.coaching_text = text_service.generate(build_coaching_payload(report))
        except CollaboratorUnavailable as e:
            logger.warning(f"Coaching text unavailable, returning numeric report only: {e}")
            report.coaching_text = None

    logger.info(
        f"Insight report for {report.reference_date}: workouts={report.totals['total_workouts']}, "
        f"consistency={report.consistency['label']}, trend={report.trend['direction']}, "
        f"recovery={report.recovery['status']}, balance={report.muscle_balance['status']}."
    )
    return report


def generate_recommendations(
    records: Iterable[Any],
    reference: Union[datetime, date],
    text_service,
    config: Optional[InsightConfig] = None,
) -> Dict[str, Any]:
    """
    Coaching recommendations for a snapshot.

    An empty history gets a fixed onboarding message without calling the
    text service. Otherwise the report is built with the service attached and
    'recommendations' is None if the service was unavailable.
    """
    cleaned = normalize_records(records)
    if not cleaned:
        return {"recommendations": EMPTY_HISTORY_RECOMMENDATION, "source": "fallback", "report": None}

    report = build_insight_report(cleaned, reference, config=config, text_service=text_service)
    return {
        "recommendations": report.coaching_text,
        "source": "coach" if report.coaching_text else "unavailable",
        "report": report.to_dict(),
    }
