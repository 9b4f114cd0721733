"""
Scheduling - Interval from Stability

Inverts the forgetting curve to find how long a card can rest before its
retrievability drops to the target retention.

This module works in durations only. Turning a duration into a calendar
timestamp (timezones, day boundaries) is the caller's job; next_review_at()
is a plain timedelta helper for callers that want it.
"""

from __future__ import annotations
from datetime import datetime, timedelta

from recall_core.errors import InvalidInputError
from recall_core.fsrs.constants import MIN_INTERVAL_DAYS, Rating
from recall_core.fsrs.memory_state import (
    require_aware,
    require_finite,
    require_positive,
    require_rating,
)
from recall_core.fsrs.weights import DEFAULT_WEIGHTS, FsrsWeights


def require_target_retention(target_retention: float) -> float:
    target = require_finite("target_retention", target_retention)
    if not 0.0 < target < 1.0:
        raise InvalidInputError(f"target_retention must be in (0, 1), got {target_retention!r}")
    return target


def next_interval_days(
    target_retention: float,
    stability: float,
    rating: int,
    weights: FsrsWeights = DEFAULT_WEIGHTS
) -> float:
    """
    Days until retrievability falls to target_retention.

    Formula:
        t = S / F * (target^(-1/d) - 1)

    which is the exact inverse of R = (1 + F * t / S)^(-d); at target = 0.9
    the interval equals S. Hard intervals are shortened by w15 and Easy
    intervals stretched by w16.

    Args:
        target_retention: Desired recall probability at the next review
        stability: Stability after this review (S > 0)
        rating: Rating of this review
        weights: FSRS weights

    Returns:
        Interval in days (>= MIN_INTERVAL_DAYS)
    """
    target = require_target_retention(target_retention)
    stability = require_positive("stability", stability)
    rating = require_rating(rating)

    interval = stability / weights.curve_factor * (target ** (-1.0 / weights.decay) - 1.0)

    if rating == Rating.HARD:
        interval *= weights.hard_penalty
    elif rating == Rating.EASY:
        interval *= weights.easy_bonus

    return max(MIN_INTERVAL_DAYS, interval)


def next_review_at(reviewed_at: datetime, interval_days: float) -> datetime:
    """Timestamp interval_days after reviewed_at."""
    require_aware("reviewed_at", reviewed_at)
    interval_days = require_positive("interval_days", interval_days)
    return reviewed_at + timedelta(days=interval_days)
