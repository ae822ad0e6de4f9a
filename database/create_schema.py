import os
import sys

import psycopg2

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from coachfit.config import get_db_connection_params  # noqa: E402

# Tables read by coachfit.history_source. Writes belong to the logging app.
SQL_COMMANDS = """
CREATE EXTENSION IF NOT EXISTS "pgcrypto";

CREATE TABLE IF NOT EXISTS users (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    email VARCHAR(255) UNIQUE NOT NULL,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS exercises (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name VARCHAR(255) UNIQUE NOT NULL,
    muscle_group VARCHAR(100) -- free text, e.g. 'Chest', 'Legs', 'Abs'
);

CREATE TABLE IF NOT EXISTS workouts (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    performed_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP,
    notes TEXT
);

-- One row per set; item_index groups sets into the workout's exercise items.
CREATE TABLE IF NOT EXISTS workout_sets (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    workout_id UUID NOT NULL REFERENCES workouts(id) ON DELETE CASCADE,
    item_index INTEGER NOT NULL,
    exercise_id UUID NOT NULL REFERENCES exercises(id) ON DELETE RESTRICT,
    muscle_group VARCHAR(100),
    set_number INTEGER NOT NULL,
    reps INTEGER NOT NULL,
    weight DECIMAL(7,2) NOT NULL DEFAULT 0,
    rpe DECIMAL(3,1) CHECK (rpe BETWEEN 1 AND 10)
);

CREATE INDEX IF NOT EXISTS idx_workouts_user_id_performed_at ON workouts(user_id, performed_at);
CREATE INDEX IF NOT EXISTS idx_workout_sets_workout_id ON workout_sets(workout_id);
"""


def create_schema():
    conn_params = get_db_connection_params()
    conn = None
    try:
        print(f"Connecting to database '{conn_params.get('dbname')}' on host '{conn_params.get('host')}'.")
        conn = psycopg2.connect(**conn_params)
        with conn.cursor() as cur:
            cur.execute(SQL_COMMANDS)
        conn.commit()
        print("Schema created successfully (or already existed).")
    except psycopg2.OperationalError as e:
        print(f"Error connecting to the database: {e}")
        print("Please ensure PostgreSQL is running and the target database exists.")
        sys.exit(1)
    except psycopg2.Error as e:
        print(f"Error during database operation: {e}")
        if conn:
            conn.rollback()
        sys.exit(1)
    finally:
        if conn:
            conn.close()


if __name__ == "__main__":
    create_schema()
