"""
Constants for calibration metrics.
"""

from __future__ import annotations

from typing import Final

from recall_core.analytics.types import Reliability
from recall_core.schemas import ReviewState


DEFAULT_DAYS: Final[int] = 30
MAX_DAYS: Final[int] = 365
WINDOWS_BACKFILL_DAYS: Final[int] = 180

# Trailing review windows and the statistical power each one carries,
# independent of how many reviews actually fill it
REVIEW_WINDOWS: Final[tuple[int, ...]] = (100, 300, 1000)
WINDOW_RELIABILITY: Final[dict[int, Reliability]] = {
    100: "low",
    300: "medium",
    1000: "high",
}

SESSION_WINDOW_COUNT: Final[int] = 10

GRADUATED_STATES: Final[frozenset[int]] = frozenset({ReviewState.REVIEW})

# Columns of the review-outcome frame
REVIEW_COLUMNS: Final[list[str]] = [
    "id",
    "card_id",
    "rating",
    "reviewed_at",
    "shown_at",
    "review_duration_ms",
    "elapsed_days",
    "scheduled_days",
    "retrievability_before",
    "session_id",
    "review_state",
    "outcome",
    "metric_date",
]
