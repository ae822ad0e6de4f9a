# coachfit/constants.py
#
# Policy thresholds for the insight engine. None of these are fitted to data;
# they are coaching rules of thumb and can be overridden through InsightConfig.

# --- Training load ---
DEFAULT_RPE = 5.0           # Assumed effort when a set has no RPE logged
BODYWEIGHT_LOAD_FACTOR = 1.0  # Stand-in for weight on bodyweight (weight == 0) sets
MIN_RPE = 1.0
MAX_RPE = 10.0

# --- Consistency ---
CONSISTENCY_WEEKS = 8
TARGET_WORKOUTS_PER_WEEK = 3.0
CONSISTENCY_RAW_SCORE_CAP = 110.0
CONSISTENCY_DISPLAY_CAP = 100
VERY_CONSISTENT_SCORE = 80
INCONSISTENT_SCORE = 40

# --- Trend ---
TREND_SLOPE_THRESHOLD = 0.3  # workouts/week change per week

# --- Recovery ---
RECOVERY_WINDOW_DAYS = 7     # last7 vs prev7
RECOVERY_HIGH_RATIO = 1.3
RECOVERY_LOW_RATIO = 0.7

# --- Muscle balance ---
MUSCLE_WINDOW_DAYS = 30
IMBALANCE_RATIO = 0.6

# Keyword lists are matched case-insensitively as substrings of the free-text
# muscle group. They are not exhaustive: anything unmatched, or matching more
# than one category (e.g. "lower back"), lands in Other.
MUSCLE_CATEGORY_KEYWORDS = {
    "Upper Body": ("chest", "shoulder", "back", "arm", "upper"),
    "Lower Body": ("leg", "glute", "lower"),
    "Core": ("core", "abs"),
    "Cardio": ("cardio", "aerobic"),
}
OTHER_CATEGORY = "Other"
MUSCLE_CATEGORIES = ("Upper Body", "Lower Body", "Core", "Cardio", OTHER_CATEGORY)

# --- Reporting ---
TOP_EXERCISE_COUNT = 5
ACTIVITY_WINDOW_DAYS = 7
RECENT_ACTIVITY_DAYS = 30
UNKNOWN_EXERCISE_NAME = "Unknown exercise"

EMPTY_HISTORY_RECOMMENDATION = (
    "Once you log a few workouts, I'll analyze them and suggest how to balance your training. "
    "For now, aim for 2-3 full-body or upper/lower sessions per week with at least one rest day in between."
)

# --- Coaching text service ---
LLM_TIMEOUT_MS = 20000
