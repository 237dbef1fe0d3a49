"""Centralized constants for the prepigo scheduling engine.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- FSRS-4.5 ----------
FSRS45_WEIGHT_COUNT = 17
DEFAULT_FSRS45_WEIGHTS = (
    0.4, 0.6, 2.4, 5.8, 4.93, 0.94, 0.86, 0.01, 1.49,
    0.14, 0.94, 2.18, 0.05, 0.34, 1.26, 0.29, 2.61,
)

# ---------- FSRS-6 ----------
FSRS6_WEIGHT_COUNT = 21
DEFAULT_FSRS6_WEIGHTS = (
    0.212, 1.2931, 2.3065, 8.2956, 6.4133, 0.8334, 3.0194, 0.001, 1.8722, 0.1666, 0.796,
    1.4835, 0.0614, 0.2629, 1.6483, 0.6014, 1.8729, 0.5425, 0.0912, 0.0658, 0.1542,
)

# ---------- FSRS bounds ----------
DEFAULT_REQUEST_RETENTION = 0.9
DEFAULT_MAXIMUM_INTERVAL = 36500
MCQ_REQUEST_RETENTION = 0.82
MCQ_MAXIMUM_INTERVAL = 365
MIN_STABILITY = 0.1
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0

# ---------- SM-2 ----------
SM2_MIN_EASE = 1.3
SM2_STARTING_EASE = 2.5

# ---------- Classification ----------
DEFAULT_MATURITY_THRESHOLD_DAYS = 21

# ---------- Daily limits ----------
DEFAULT_NEW_PER_DAY = 20
DEFAULT_REVIEWS_PER_DAY = 200

# ---------- Time ----------
MINUTES_PER_DAY = 1440
SECONDS_PER_DAY = 86400.0
