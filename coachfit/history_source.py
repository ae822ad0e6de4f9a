"""
WorkoutHistorySource backed by PostgreSQL.

Reads one user's workouts with their sets and joined exercise details and
returns them as WorkoutRecord snapshots. The engine never writes back.
"""
import logging
from typing import List

import psycopg2
import psycopg2.extras

from coachfit.models import (
    ExerciseReference,
    ResolvedExercise,
    SetEntry,
    WorkoutItem,
    WorkoutRecord,
)

logger = logging.getLogger(__name__)

WORKOUT_HISTORY_QUERY = """
    SELECT w.id AS workout_id, w.performed_at, w.notes,
           ws.item_index, ws.exercise_id, ws.muscle_group AS item_muscle_group,
           ws.reps, ws.weight, ws.rpe,
           e.name AS exercise_name, e.muscle_group AS exercise_muscle_group
    FROM workouts w
    LEFT JOIN workout_sets ws ON ws.workout_id = w.id
    LEFT JOIN exercises e ON e.id = ws.exercise_id
    WHERE w.user_id = %s
    ORDER BY w.performed_at ASC, w.id, ws.item_index ASC, ws.set_number ASC;
"""


def _exercise_from_row(row):
    ex_id = str(row['exercise_id'])
    if row.get('exercise_name') is None:
        return ExerciseReference(id=ex_id)
    return ResolvedExercise(id=ex_id, name=row['exercise_name'], muscle_group=row.get('exercise_muscle_group'))


def rows_to_records(rows) -> List[WorkoutRecord]:
    """Group flat workout/set rows (ordered by workout, then item) into records."""
    records = []
    current = None  # (workout row, {item_index: [exercise, muscle_group, [sets]]})
    for row in rows:
        if current is None or current[0]['workout_id'] != row['workout_id']:
            current = (row, {})
            records.append(current)
        if row.get('item_index') is None:
            continue
        item = current[1].setdefault(
            row['item_index'], [_exercise_from_row(row), row.get('item_muscle_group'), []]
        )
        item[2].append(
            SetEntry(
                reps=int(row['reps'] or 0),
                weight=float(row['weight'] or 0),
                rpe=float(row['rpe']) if row.get('rpe') is not None else None,
            )
        )

    return [
        WorkoutRecord(
            id=str(head['workout_id']),
            date=head['performed_at'],
            notes=head.get('notes'),
            items=tuple(
                WorkoutItem(exercise=exercise, muscle_group=muscle_group, sets=tuple(sets))
                for _, (exercise, muscle_group, sets) in sorted(items.items())
            ),
        )
        for head, items in records
    ]


def fetch_workout_history(user_id, db_conn) -> List[WorkoutRecord]:
    """
    Load every workout for ``user_id``.

    Args:
        user_id: The UUID (or its string form) of the user.
        db_conn: Active database connection.

    Returns:
        The user's workouts as WorkoutRecords, oldest first.

    Raises:
        psycopg2.Error: propagated so the web layer can answer with a 500.
    """
    with db_conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
        cur.execute(WORKOUT_HISTORY_QUERY, (str(user_id),))
        rows = cur.fetchall()
    records = rows_to_records(rows)
    logger.info(f"Loaded {len(records)} workouts ({len(rows)} rows) for user {user_id}.")
    return records
