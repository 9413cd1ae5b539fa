"""Centralized constants for the cadence scheduler.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- SM-2 ----------
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MAX_INTERVAL_DAYS = 365
PASSING_RATING = 3  # ratings >= this count as a successful recall
MIN_RATING = 0
MAX_RATING = 5

# Tiered intervals for the first two consecutive successes
FIRST_SUCCESS_INTERVAL = 1
SECOND_SUCCESS_INTERVAL = 6
LAPSE_INTERVAL = 1

# ---------- Maturity ----------
MATURE_INTERVAL_DAYS = 21  # strictly greater than this is "mature"
MASTERY_REPETITION_DAYS = 1.5  # repetitions -> elapsed-time heuristic

# ---------- Cards ----------
DEFAULT_DIFFICULTY = 3
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5

# ---------- Sessions ----------
DEFAULT_SESSION_LIMIT = 20

# ---------- Decks ----------
DEFAULT_NEW_CARDS_PER_DAY = 20
DEFAULT_REVIEW_LIMIT = 100

# ---------- Study Stats ----------
STATS_WINDOW_HOURS = 24
RETENTION_SAMPLE_SIZE = 1000
STREAK_REVIEWS_PER_DAY = 10

# ---------- Forecast ----------
DEFAULT_FORECAST_DAYS = 7

SECONDS_PER_DAY = 86400.0
