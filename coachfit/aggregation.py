"""
Bucketing of a workout snapshot into per-day and per-week aggregates.

This is the boundary where raw input is cleaned: dict documents are parsed,
exercise references are resolved to muscle-group strings, bad set values are
clamped, duplicate records are dropped and records are put in date order.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable, List, Sequence, Union

from coachfit.constants import BODYWEIGHT_LOAD_FACTOR, DEFAULT_RPE
from coachfit.models import (
    AllTimeTotals,
    DailyBucket,
    WeeklyBucket,
    WorkoutItem,
    WorkoutRecord,
    parse_workout_record,
    sanitize_set,
)
from coachfit.training_load import session_load

logger = logging.getLogger(__name__)

Timestamp = Union[datetime, date]


@dataclass
class HistoryAggregate:
    records: List[WorkoutRecord]
    daily: List[DailyBucket]
    totals: AllTimeTotals

    @property
    def window_start(self) -> date:
        return self.daily[0].date

    @property
    def window_end(self) -> date:
        return self.daily[-1].date


def local_day(timestamp: Timestamp, reference: Timestamp) -> date:
    """Calendar day of ``timestamp`` in the reference's local time."""
    if not isinstance(timestamp, datetime):
        return timestamp
    if (
        isinstance(reference, datetime)
        and reference.tzinfo is not None
        and timestamp.tzinfo is not None
    ):
        return timestamp.astimezone(reference.tzinfo).date()
    return timestamp.date()


def _sort_key(record: WorkoutRecord) -> datetime:
    # Aware values are compared as naive UTC so mixed offsets order by the
    # actual instant. Naive values and plain dates use their wall clock.
    ts = record.date
    if isinstance(ts, datetime):
        if ts.tzinfo is not None:
            return ts.astimezone(timezone.utc).replace(tzinfo=None)
        return ts
    return datetime.combine(ts, datetime.min.time())


def normalize_records(records: Iterable[Any]) -> List[WorkoutRecord]:
    """
    Parse, clean and order a snapshot.

    Args:
        records: WorkoutRecord instances or plain dicts, in any order.

    Returns:
        Records sorted by date (stable for equal dates), each set clamped into
        range and each item carrying its resolved muscle group. A record whose
        non-null id was already seen is dropped, keeping the earliest one.
    """
    parsed = [r if isinstance(r, WorkoutRecord) else parse_workout_record(r) for r in records]
    parsed.sort(key=_sort_key)

    seen_ids = set()
    cleaned = []
    for record in parsed:
        if record.id is not None:
            if record.id in seen_ids:
                logger.info(f"Skipping duplicate workout record {record.id}.")
                continue
            seen_ids.add(record.id)
        items = tuple(
            WorkoutItem(
                exercise=item.exercise,
                sets=tuple(sanitize_set(s, record.id) for s in item.sets),
                muscle_group=item.resolved_muscle_group,
            )
            for item in record.items
        )
        cleaned.append(WorkoutRecord(id=record.id, date=record.date, items=items, notes=record.notes))
    return cleaned


def build_daily_buckets(
    records: Sequence[WorkoutRecord],
    reference: Timestamp,
    window_days: int,
    default_rpe: float = DEFAULT_RPE,
    bodyweight_factor: float = BODYWEIGHT_LOAD_FACTOR,
) -> List[DailyBucket]:
    """
    One bucket per calendar day in [today - window_days + 1, today], oldest first.

    Days without a workout get a zero-filled bucket. Records outside the
    window (including ones dated after today) are ignored.
    """
    if window_days < 1:
        raise ValueError("window_days must be at least 1")
    today = local_day(reference, reference)
    start = today - timedelta(days=window_days - 1)
    buckets = [DailyBucket(date=start + timedelta(days=i)) for i in range(window_days)]

    for record in records:
        day = local_day(record.date, reference)
        if day < start or day > today:
            continue
        bucket = buckets[(day - start).days]
        bucket.workout_count += 1
        bucket.set_count += record.set_count
        bucket.load += session_load(record, default_rpe, bodyweight_factor)
    return buckets


def build_weekly_buckets(daily: Sequence[DailyBucket], weeks: int) -> List[WeeklyBucket]:
    """
    Fold the most recent ``weeks * 7`` daily buckets into 7-day weeks ending today.

    Week 0 is the oldest; the last week ends on the last daily bucket.
    """
    needed = weeks * 7
    if weeks < 0 or len(daily) < needed:
        raise ValueError(f"Need {needed} daily buckets for {weeks} weeks, got {len(daily)}")
    tail = list(daily[len(daily) - needed:])
    result = []
    for index in range(weeks):
        chunk = tail[index * 7:(index + 1) * 7]
        result.append(
            WeeklyBucket(
                week_index=index,
                start_date=chunk[0].date,
                end_date=chunk[-1].date,
                workout_count=sum(b.workout_count for b in chunk),
                load=sum(b.load for b in chunk),
            )
        )
    return result


def compute_all_time_totals(records: Sequence[WorkoutRecord]) -> AllTimeTotals:
    """Totals over the whole snapshot, unbounded by any window.

    Exercise frequency counts the workout items an exercise appears in, in
    first-encountered order.
    """
    totals = AllTimeTotals()
    for record in records:
        totals.total_workouts += 1
        for item in record.items:
            totals.total_sets += len(item.sets)
            ex_id = item.exercise_id
            totals.exercise_frequency[ex_id] = totals.exercise_frequency.get(ex_id, 0) + 1
            totals.exercise_names.setdefault(ex_id, item.exercise_name)
            group = item.resolved_muscle_group
            totals.muscle_group_frequency[group] = totals.muscle_group_frequency.get(group, 0) + 1
    return totals


def aggregate_history(
    records: Iterable[Any],
    reference: Timestamp,
    window_days: int,
    default_rpe: float = DEFAULT_RPE,
    bodyweight_factor: float = BODYWEIGHT_LOAD_FACTOR,
) -> HistoryAggregate:
    """Daily buckets for the window plus all-time totals for a raw snapshot."""
    cleaned = normalize_records(records)
    daily = build_daily_buckets(cleaned, reference, window_days, default_rpe, bodyweight_factor)
    return HistoryAggregate(records=cleaned, daily=daily, totals=compute_all_time_totals(cleaned))
