"""
Data model for the insight engine: the workout snapshot it reads and the
derived values it produces. Derived values are rebuilt on every call and
never persisted.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from coachfit.constants import MAX_RPE, MIN_RPE, OTHER_CATEGORY, UNKNOWN_EXERCISE_NAME

logger = logging.getLogger(__name__)


# --- Exercise references ---

@dataclass(frozen=True)
class ExerciseReference:
    """An exercise known only by id (not populated by the store)."""
    id: str


@dataclass(frozen=True)
class ResolvedExercise:
    """An exercise populated with its name and muscle group."""
    id: str
    name: Optional[str] = None
    muscle_group: Optional[str] = None


ExerciseRef = Union[ExerciseReference, ResolvedExercise]


# --- Snapshot records ---

@dataclass(frozen=True)
class SetEntry:
    reps: int = 0
    weight: float = 0.0
    rpe: Optional[float] = None


@dataclass(frozen=True)
class WorkoutItem:
    exercise: ExerciseRef
    sets: Sequence[SetEntry] = ()
    muscle_group: Optional[str] = None

    @property
    def exercise_id(self) -> str:
        return self.exercise.id

    @property
    def exercise_name(self) -> str:
        if isinstance(self.exercise, ResolvedExercise) and self.exercise.name:
            return self.exercise.name
        return UNKNOWN_EXERCISE_NAME

    @property
    def resolved_muscle_group(self) -> str:
        """Muscle group of the item, falling back to the exercise's, then Other."""
        if self.muscle_group:
            return self.muscle_group
        if isinstance(self.exercise, ResolvedExercise) and self.exercise.muscle_group:
            return self.exercise.muscle_group
        return OTHER_CATEGORY


@dataclass(frozen=True)
class WorkoutRecord:
    id: Optional[str]
    date: Union[datetime, date]
    items: Sequence[WorkoutItem] = ()
    notes: Optional[str] = None

    @property
    def set_count(self) -> int:
        return sum(len(item.sets) for item in self.items)


# --- Derived values ---

@dataclass
class DailyBucket:
    date: date
    workout_count: int = 0
    set_count: int = 0
    load: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "workout_count": self.workout_count,
            "set_count": self.set_count,
            "load": round(self.load, 2),
        }


@dataclass
class WeeklyBucket:
    week_index: int  # 0 is the oldest week in the window
    start_date: date
    end_date: date
    workout_count: int = 0
    load: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "week_index": self.week_index,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "workout_count": self.workout_count,
            "load": round(self.load, 2),
        }


@dataclass
class MuscleBucketVolume:
    category: str
    set_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"category": self.category, "set_count": self.set_count}


@dataclass
class AllTimeTotals:
    total_workouts: int = 0
    total_sets: int = 0
    exercise_frequency: Dict[str, int] = field(default_factory=dict)  # exercise id -> item count
    exercise_names: Dict[str, str] = field(default_factory=dict)
    muscle_group_frequency: Dict[str, int] = field(default_factory=dict)


@dataclass
class InsightReport:
    consistency: Dict[str, Any]
    recovery: Dict[str, Any]
    trend: Dict[str, Any]
    muscle_balance: Dict[str, Any]
    top_exercises: List[Dict[str, Any]]
    totals: Dict[str, Any]
    training_load: Dict[str, Any]
    reference_date: str
    summary_text: Optional[str] = None
    coaching_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reference_date": self.reference_date,
            "consistency": self.consistency,
            "recovery": self.recovery,
            "trend": self.trend,
            "muscle_balance": self.muscle_balance,
            "top_exercises": self.top_exercises,
            "totals": self.totals,
            "training_load": self.training_load,
            "summary_text": self.summary_text,
            "coaching_text": self.coaching_text,
        }


def enum_value(value):
    return value.value if isinstance(value, Enum) else value


# --- Parsing from store/JSON shapes ---

def _parse_timestamp(value) -> Union[datetime, date]:
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, (int, float)):
        # Epoch milliseconds, as JSON stores commonly emit.
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    raise ValueError(f"Unsupported workout date value: {value!r}")


def _to_number(value, default: Optional[float] = 0.0) -> Optional[float]:
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return number if math.isfinite(number) else default


def sanitize_set(entry: SetEntry, record_id=None) -> SetEntry:
    """Clamp a set into its valid ranges.

    Negative or non-finite weight and negative reps go to 0. A non-finite RPE
    is dropped and any other RPE is pulled into [1, 10]. A bad value is
    logged and repaired rather than rejected.
    """
    reps, weight, rpe = entry.reps, entry.weight, entry.rpe
    clamped = False
    if not math.isfinite(weight):
        weight, clamped = 0.0, True
    if rpe is not None and not math.isfinite(rpe):
        rpe, clamped = None, True
    if reps < 0:
        reps, clamped = 0, True
    if weight < 0:
        weight, clamped = 0.0, True
    if rpe is not None and not MIN_RPE <= rpe <= MAX_RPE:
        rpe, clamped = max(MIN_RPE, min(rpe, MAX_RPE)), True
    if not clamped:
        return entry
    logger.warning(
        f"Malformed set in workout {record_id}: reps={entry.reps}, weight={entry.weight}, rpe={entry.rpe}. "
        f"Clamped to reps={reps}, weight={weight}, rpe={rpe}."
    )
    return SetEntry(reps=reps, weight=weight, rpe=rpe)


def parse_exercise_ref(value) -> ExerciseRef:
    """Turn an id-or-populated-object exercise field into a tagged reference."""
    if isinstance(value, (ExerciseReference, ResolvedExercise)):
        return value
    if isinstance(value, dict):
        ex_id = value.get("id", value.get("_id"))
        return ResolvedExercise(
            id=str(ex_id) if ex_id is not None else "",
            name=value.get("name"),
            muscle_group=value.get("muscle_group", value.get("muscleGroup")),
        )
    return ExerciseReference(id="" if value is None else str(value))


def parse_set(data: Dict[str, Any]) -> SetEntry:
    # Unreadable or non-finite numbers fall back to the defaults (RPE to unset).
    return SetEntry(
        reps=int(_to_number(data.get("reps"))),
        weight=_to_number(data.get("weight")),
        rpe=_to_number(data.get("rpe"), default=None),
    )


def parse_workout_record(data: Dict[str, Any]) -> WorkoutRecord:
    """Build a WorkoutRecord from a plain dict (JSON document or DB row).

    Accepts both snake_case and the camelCase keys used by JSON clients
    (``exerciseId``, ``muscleGroup``, ``_id``).
    """
    items = []
    for item in data.get("items") or []:
        exercise = item.get("exercise", item.get("exercise_id", item.get("exerciseId")))
        ref = parse_exercise_ref(exercise)
        name = item.get("exercise_name", item.get("exerciseName"))
        if name and isinstance(ref, ExerciseReference):
            ref = ResolvedExercise(id=ref.id, name=name)
        items.append(
            WorkoutItem(
                exercise=ref,
                sets=tuple(parse_set(s) for s in item.get("sets") or []),
                muscle_group=item.get("muscle_group", item.get("muscleGroup")),
            )
        )
    record_id = data.get("id", data.get("_id"))
    return WorkoutRecord(
        id=str(record_id) if record_id is not None else None,
        date=_parse_timestamp(data.get("date")),
        items=tuple(items),
        notes=data.get("notes"),
    )
