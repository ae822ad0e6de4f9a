"""Configuration for the insight engine and its HTTP host."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from urllib.parse import urlparse

from coachfit import constants

logger = logging.getLogger(__name__)

ENV_PREFIX = "COACHFIT_"


@dataclass(frozen=True)
class InsightConfig:
    """Every heuristic threshold used by the pipeline, as named values.

    The defaults are the policy constants from ``coachfit.constants``.
    """

    consistency_weeks: int = constants.CONSISTENCY_WEEKS
    target_workouts_per_week: float = constants.TARGET_WORKOUTS_PER_WEEK
    consistency_raw_cap: float = constants.CONSISTENCY_RAW_SCORE_CAP
    very_consistent_score: int = constants.VERY_CONSISTENT_SCORE
    inconsistent_score: int = constants.INCONSISTENT_SCORE
    trend_slope_threshold: float = constants.TREND_SLOPE_THRESHOLD
    recovery_window_days: int = constants.RECOVERY_WINDOW_DAYS
    recovery_high_ratio: float = constants.RECOVERY_HIGH_RATIO
    recovery_low_ratio: float = constants.RECOVERY_LOW_RATIO
    muscle_window_days: int = constants.MUSCLE_WINDOW_DAYS
    imbalance_ratio: float = constants.IMBALANCE_RATIO
    top_exercise_count: int = constants.TOP_EXERCISE_COUNT
    activity_window_days: int = constants.ACTIVITY_WINDOW_DAYS
    default_rpe: float = constants.DEFAULT_RPE
    bodyweight_factor: float = constants.BODYWEIGHT_LOAD_FACTOR

    @classmethod
    def from_env(cls, environ=None) -> "InsightConfig":
        """Build a config, overriding defaults from ``COACHFIT_<FIELD>`` variables.

        Values that don't parse as the field's type are logged and ignored.
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            caster = int if f.type in ("int", int) else float
            try:
                value = caster(raw)
            except ValueError:
                logger.warning(
                    f"Ignoring invalid value {raw!r} for {ENV_PREFIX}{f.name.upper()}; keeping default {f.default}."
                )
                continue
            if value < 0:
                logger.warning(
                    f"Ignoring negative value {raw!r} for {ENV_PREFIX}{f.name.upper()}; keeping default {f.default}."
                )
                continue
            overrides[f.name] = value
        return cls(**overrides)

    @property
    def required_history_days(self) -> int:
        """Days of daily buckets needed to feed every component."""
        return max(
            self.consistency_weeks * 7,
            self.recovery_window_days * 2,
            self.muscle_window_days,
            self.activity_window_days,
            constants.RECENT_ACTIVITY_DAYS,
        )


# --- Application settings (HTTP host) ---
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
RATELIMIT_STORAGE_URL = os.getenv("RATELIMIT_STORAGE_URL", "memory://")
LLM_MODEL = os.getenv("COACHFIT_LLM_MODEL", "gemini-2.5-flash")


def get_llm_timeout_ms() -> int:
    """HTTP timeout for the coaching text service, in milliseconds."""
    raw = os.getenv("COACHFIT_LLM_TIMEOUT_MS")
    if not raw:
        return constants.LLM_TIMEOUT_MS
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        logger.warning(f"Ignoring invalid COACHFIT_LLM_TIMEOUT_MS={raw!r}; using {constants.LLM_TIMEOUT_MS}.")
        return constants.LLM_TIMEOUT_MS
    return value


def get_llm_api_key() -> str | None:
    return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")


def get_db_connection_params():
    """Determines database connection parameters from DATABASE_URL or POSTGRES_* vars."""
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        try:
            url = urlparse(database_url)
            return {
                'dbname': url.path[1:],
                'user': url.username,
                'password': url.password,
                'host': url.hostname,
                'port': url.port
            }
        except ValueError as e:
            logger.error(f"Failed to parse DATABASE_URL: {e}. Falling back to POSTGRES_* vars.")

    return {
        'dbname': os.getenv("POSTGRES_DB"),
        'user': os.getenv("POSTGRES_USER"),
        'password': os.getenv("POSTGRES_PASSWORD"),
        'host': os.getenv("POSTGRES_HOST"),
        'port': os.getenv("POSTGRES_PORT", "5432")
    }
