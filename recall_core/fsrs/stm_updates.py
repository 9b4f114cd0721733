"""
Short-Term Memory (STM) Updates

Same-day reviews (cramming, relearning within the day) do not follow the
long-term stability formulas. Instead they apply a small multiplicative
bump that saturates as stability grows.

Key principle:
A same-day review can strengthen memory a little but NEVER lowers stability.
"""

from __future__ import annotations
import math

from recall_core.errors import InvalidInputError
from recall_core.fsrs.constants import SAME_DAY_THRESHOLD_HOURS
from recall_core.fsrs.memory_state import (
    require_finite,
    require_positive,
    require_rating,
)
from recall_core.fsrs.weights import DEFAULT_WEIGHTS, FsrsWeights


def is_same_day_review(
    elapsed_hours: float,
    threshold_hours: float = SAME_DAY_THRESHOLD_HOURS
) -> bool:
    """A review counts as same-day while the gap is below the cutoff."""
    return 0 <= elapsed_hours < threshold_hours


def update_stability_same_day(
    stability: float,
    elapsed_hours: float,
    rating: int,
    weights: FsrsWeights = DEFAULT_WEIGHTS,
    threshold_hours: float = SAME_DAY_THRESHOLD_HOURS
) -> float:
    """
    Update stability for a review inside the same-day window.

    Formula:
        SInc  = e^(w17 * (G - 3 + w18)) * S^(-w19)
        S_new = S * max(1, SInc)

    Once elapsed_hours reaches threshold_hours the input stability is
    returned unchanged; the long-term update applies instead.

    Args:
        stability: Current stability (S > 0)
        elapsed_hours: Hours since the previous review
        rating: Rating of this review
        weights: FSRS weights
        threshold_hours: Same-day cutoff in hours

    Returns:
        New stability, never below the input stability
    """
    stability = require_positive("stability", stability)
    elapsed_hours = require_finite("elapsed_hours", elapsed_hours)
    threshold_hours = require_positive("threshold_hours", threshold_hours)
    rating = require_rating(rating)
    if elapsed_hours < 0:
        raise InvalidInputError(f"elapsed_hours must be >= 0, got {elapsed_hours}")

    if not is_same_day_review(elapsed_hours, threshold_hours):
        return stability

    increment = (
        math.exp(weights.same_day_rate * (rating - 3 + weights.same_day_offset))
        * stability ** (-weights.same_day_saturation)
    )
    return stability * max(1.0, increment)
