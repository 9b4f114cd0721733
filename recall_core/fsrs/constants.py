"""
FSRS Constants and Parameters

All fixed parameters for the FSRS-6 memory model in one place.
Tunable values (target retention, same-day cutoff, ...) live in
recall_core.config and are passed in by the caller.
"""

from enum import IntEnum


# ---- Ratings ----

class Rating(IntEnum):
    """Learner's self-reported recall outcome."""
    AGAIN = 1   # Retrieval failed
    HARD = 2    # Retrieved with high effort
    GOOD = 3    # Retrieved normally
    EASY = 4    # Retrieved fluently


PASSING_RATINGS = (Rating.HARD, Rating.GOOD, Rating.EASY)


# ---- Forgetting curve ----

REFERENCE_RETENTION = 0.9   # R(t = S) by definition of stability
WEIGHT_COUNT = 21


# ---- Bounds ----

D_MIN = 1.0      # Minimum difficulty
D_MAX = 10.0     # Maximum difficulty
MIN_INTERVAL_DAYS = 0.1


# ---- Defaults ----

DEFAULT_TARGET_RETENTION = 0.9
SAME_DAY_THRESHOLD_HOURS = 24.0
DEFAULT_WEIGHTS_VERSION = "fsrs-6"

# FSRS-6 published defaults, public 21-element order
FSRS6_DEFAULT_VECTOR = (
    0.212,    # w0: initial stability, Again
    1.2931,   # w1: initial stability, Hard
    2.3065,   # w2: initial stability, Good
    8.2956,   # w3: initial stability, Easy
    6.4133,   # w4: initial difficulty base
    0.8334,   # w5: initial difficulty exponent
    3.0194,   # w6: difficulty delta
    0.001,    # w7: difficulty mean reversion
    1.8722,   # w8: success stability base
    0.1666,   # w9: success stability saturation
    0.796,    # w10: success retrievability factor
    1.4835,   # w11: failure stability base
    0.0614,   # w12: failure difficulty exponent
    0.2629,   # w13: failure stability exponent
    1.6483,   # w14: failure retrievability factor
    0.6014,   # w15: hard penalty
    1.8729,   # w16: easy bonus
    0.5425,   # w17: same-day rate
    0.0912,   # w18: same-day offset
    0.0658,   # w19: same-day saturation
    0.1542,   # w20: forgetting curve decay
)


# ---- Interval messages ----

HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7
DAYS_PER_MONTH = 30
