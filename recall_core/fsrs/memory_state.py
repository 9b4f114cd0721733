"""
Memory State - FSRS Card State and Retrievability

Defines the core memory state variables and derived quantities for FSRS.

Key concepts:
- Stability (S): Days until recall probability falls to 90%
- Difficulty (D): How hard the card is to learn (1-10 scale)
- Retrievability (R): Probability of successful recall at time t
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import math

from recall_core.errors import InvalidInputError
from recall_core.fsrs.constants import D_MAX, D_MIN, Rating
from recall_core.fsrs.weights import DEFAULT_WEIGHTS, FsrsWeights


@dataclass(frozen=True)
class MemoryState:
    """
    Memory state for one (user, card) pair.

    Produced fresh by every review; the caller owns persistence.
    """
    stability: float  # S, in days
    difficulty: float  # D, range 1-10
    last_review_at: Optional[datetime]
    next_review_at: datetime


def require_finite(name: str, value: float) -> float:
    """Reject NaN/inf (and non-numbers) instead of letting them propagate."""
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise InvalidInputError(f"{name} must be finite, got {value!r}")
    return number


def require_positive(name: str, value: float) -> float:
    number = require_finite(name, value)
    if number <= 0:
        raise InvalidInputError(f"{name} must be positive, got {value!r}")
    return number


def require_difficulty(value: float) -> float:
    difficulty = require_finite("difficulty", value)
    if not D_MIN <= difficulty <= D_MAX:
        raise InvalidInputError(f"difficulty must be in [{D_MIN:g}, {D_MAX:g}], got {value!r}")
    return difficulty


def require_rating(rating: int) -> Rating:
    """Coerce an int rating to Rating, rejecting anything outside 1..4."""
    if isinstance(rating, bool):
        raise InvalidInputError(f"Rating must be 1-4, got {rating!r}")
    try:
        return Rating(rating)
    except ValueError as exc:
        raise InvalidInputError(f"Rating must be 1-4, got {rating!r}") from exc


def require_aware(name: str, value: datetime) -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        raise InvalidInputError(f"{name} must be timezone-aware")
    return value


def calculate_retrievability(
    elapsed_days: float,
    stability: float,
    weights: FsrsWeights = DEFAULT_WEIGHTS
) -> float:
    """
    Calculate retrievability using the FSRS-6 power-law forgetting curve.

    Formula: R = (1 + F * t / S) ^ (-d)

    Where:
    - t = days since last review
    - S = stability (in days)
    - d = decay weight
    - F = 0.9^(-1/d) - 1, so that R(S) = 0.9

    Interpretation:
    - Immediately after review: R = 1.0
    - At t = S: R = 0.9
    - R decays strictly as t grows

    Args:
        elapsed_days: Time since last review in days (>= 0)
        stability: Current stability in days
        weights: FSRS weights (decay term is used)

    Returns:
        Retrievability between 0 and 1

    Raises:
        InvalidInputError: Non-finite inputs or negative elapsed time
    """
    elapsed_days = require_finite("elapsed_days", elapsed_days)
    stability = require_finite("stability", stability)
    if elapsed_days < 0:
        raise InvalidInputError(f"elapsed_days must be >= 0, got {elapsed_days}")

    if elapsed_days == 0:
        return 1.0

    # Curve is undefined for S <= 0
    if stability <= 0:
        return 0.0

    return (1.0 + weights.curve_factor * elapsed_days / stability) ** (-weights.decay)


def elapsed_days_between(start: datetime, end: datetime) -> float:
    """Days from start to end as a float (may be negative)."""
    require_aware("start", start)
    require_aware("end", end)
    return (end - start).total_seconds() / 86400.0


def elapsed_hours_between(start: datetime, end: datetime) -> float:
    """Hours from start to end as a float (may be negative)."""
    require_aware("start", start)
    require_aware("end", end)
    return (end - start).total_seconds() / 3600.0


def is_same_day(first: datetime, second: datetime) -> bool:
    """
    Whether two timestamps fall on the same calendar day.

    Both are compared in the timezone of `first`; callers apply their own
    day-boundary rules before handing timestamps in.
    """
    require_aware("first", first)
    require_aware("second", second)
    return first.date() == second.astimezone(first.tzinfo).date()
