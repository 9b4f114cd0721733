"""
Scheduler - FSRS Review Pipeline

Pure FSRS scheduling and state updates (no database calls).

Main workflow:
1. Load prior memory state (caller's responsibility)
2. Compute retrievability at review time
3. Apply initial, same-day or long-term update rules
4. Compute the next interval for the target retention
5. Return the new state + data for the review log row

This module handles ONLY the algorithm logic.
Persisting state and review rows is handled by the caller.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional
import logging

from recall_core.errors import InvalidInputError
from recall_core.fsrs import ltm_updates, memory_state, stm_updates
from recall_core.fsrs.constants import (
    DAYS_PER_MONTH,
    DAYS_PER_WEEK,
    DEFAULT_TARGET_RETENTION,
    HOURS_PER_DAY,
    SAME_DAY_THRESHOLD_HOURS,
)
from recall_core.fsrs.memory_state import MemoryState
from recall_core.fsrs.scheduling import next_interval_days, next_review_at, require_target_retention
from recall_core.fsrs.weights import DEFAULT_WEIGHTS, FsrsWeights
from recall_core.schemas import ReviewOutcome, ReviewState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewResult:
    """What a rating submission returns to the caller."""
    state: MemoryState
    retrievability_before: Optional[float]  # None for a card's first review
    interval_days: float
    message: str
    elapsed_days: float = 0.0
    is_new_card: bool = False
    is_same_day: bool = False


@dataclass(frozen=True)
class DueCard:
    card_id: str
    retrievability: float
    state: MemoryState


def is_new_card(state: Optional[MemoryState]) -> bool:
    """No prior state, or a state reset to stability 0, means a first review."""
    return state is None or state.stability == 0


def process_review(
    prior_state: Optional[MemoryState],
    rating: int,
    reviewed_at: datetime,
    weights: FsrsWeights = DEFAULT_WEIGHTS,
    target_retention: float = DEFAULT_TARGET_RETENTION,
    same_day_threshold_hours: float = SAME_DAY_THRESHOLD_HOURS
) -> ReviewResult:
    """
    Process a review and return the updated memory state.

    This is the core FSRS algorithm. No database calls.
    Caller is responsible for:
    1. Loading the prior state
    2. Saving the new state
    3. Persisting the review row (see build_review_outcome)

    Args:
        prior_state: Current state, or None for a card never rated before
        rating: Rating (AGAIN, HARD, GOOD, EASY)
        reviewed_at: Review timestamp (timezone-aware)
        weights: FSRS weights
        target_retention: Retention the next interval should aim for
        same_day_threshold_hours: Gap below which the same-day rule applies

    Returns:
        ReviewResult with the new state, pre-review retrievability and interval

    Raises:
        InvalidInputError: Bad rating, naive timestamp, review before the
            previous review, non-positive stability or difficulty outside [1, 10]
    """
    rating = memory_state.require_rating(rating)
    memory_state.require_aware("reviewed_at", reviewed_at)
    target_retention = require_target_retention(target_retention)

    if is_new_card(prior_state):
        new_stability = ltm_updates.initial_stability(rating, weights)
        new_difficulty = ltm_updates.initial_difficulty(rating, weights)
        interval = next_interval_days(target_retention, new_stability, rating, weights)

        logger.debug(
            "New card rated %s: S=%.3f D=%.3f interval=%.2fd",
            rating.name, new_stability, new_difficulty, interval
        )
        return ReviewResult(
            state=MemoryState(
                stability=new_stability,
                difficulty=new_difficulty,
                last_review_at=reviewed_at,
                next_review_at=next_review_at(reviewed_at, interval),
            ),
            retrievability_before=None,
            interval_days=interval,
            message=format_interval_message(interval),
            is_new_card=True,
        )

    stability = memory_state.require_positive("stability", prior_state.stability)
    memory_state.require_difficulty(prior_state.difficulty)
    anchor = prior_state.last_review_at or prior_state.next_review_at

    elapsed_days = memory_state.elapsed_days_between(anchor, reviewed_at)
    if elapsed_days < 0:
        raise InvalidInputError(
            f"reviewed_at {reviewed_at.isoformat()} precedes previous review {anchor.isoformat()}"
        )
    elapsed_hours = elapsed_days * HOURS_PER_DAY

    retrievability = memory_state.calculate_retrievability(elapsed_days, stability, weights)
    same_day = (
        prior_state.last_review_at is not None
        and stm_updates.is_same_day_review(elapsed_hours, same_day_threshold_hours)
    )

    if same_day:
        new_stability = stm_updates.update_stability_same_day(
            stability, elapsed_hours, rating, weights, same_day_threshold_hours
        )
        new_difficulty = ltm_updates.update_difficulty(prior_state.difficulty, rating, weights)
    else:
        new_stability, new_difficulty = ltm_updates.apply_ltm_update(
            stability, prior_state.difficulty, retrievability, rating, weights
        )

    interval = next_interval_days(target_retention, new_stability, rating, weights)

    logger.debug(
        "Review rated %s after %.2fd (R=%.3f, same_day=%s): S %.3f -> %.3f, D %.3f -> %.3f",
        rating.name, elapsed_days, retrievability, same_day,
        stability, new_stability, prior_state.difficulty, new_difficulty
    )

    return ReviewResult(
        state=MemoryState(
            stability=new_stability,
            difficulty=new_difficulty,
            last_review_at=reviewed_at,
            next_review_at=next_review_at(reviewed_at, interval),
        ),
        retrievability_before=retrievability,
        interval_days=interval,
        message=format_interval_message(interval),
        elapsed_days=elapsed_days,
        is_same_day=same_day,
    )


def build_review_outcome(
    review_id: str,
    user_id: str,
    card_id: str,
    rating: int,
    reviewed_at: datetime,
    prior_state: Optional[MemoryState],
    result: ReviewResult,
    review_duration_ms: Optional[int] = None,
    shown_at: Optional[datetime] = None,
    session_id: Optional[str] = None,
    review_state: Optional[ReviewState] = None
) -> ReviewOutcome:
    """
    Build the append-only review log row for a processed review.

    The "before" fields are None for a card's first review.
    """
    new_card = is_new_card(prior_state)
    scheduled_days = None
    if not new_card and prior_state.last_review_at is not None:
        scheduled_days = max(
            0.0,
            memory_state.elapsed_days_between(prior_state.last_review_at, prior_state.next_review_at)
        )

    return ReviewOutcome(
        id=review_id,
        user_id=user_id,
        card_id=card_id,
        rating=int(memory_state.require_rating(rating)),
        reviewed_at=reviewed_at,
        review_duration_ms=review_duration_ms,
        shown_at=shown_at,
        elapsed_days=result.elapsed_days,
        scheduled_days=scheduled_days,
        stability_before=None if new_card else prior_state.stability,
        difficulty_before=None if new_card else prior_state.difficulty,
        retrievability_before=result.retrievability_before,
        session_id=session_id,
        review_state=review_state,
    )


def get_due_cards(
    cards: Iterable[tuple[str, MemoryState]],
    now: datetime,
    target_retention: float = DEFAULT_TARGET_RETENTION,
    weights: FsrsWeights = DEFAULT_WEIGHTS
) -> list[DueCard]:
    """
    Cards whose retrievability has dropped to the target retention.

    Args:
        cards: (card_id, state) pairs
        now: Current time (timezone-aware)
        target_retention: Due threshold
        weights: FSRS weights

    Returns:
        Due cards sorted by retrievability (most urgent first)
    """
    memory_state.require_aware("now", now)
    target_retention = require_target_retention(target_retention)

    due: list[DueCard] = []
    for card_id, state in cards:
        if is_new_card(state):
            continue
        anchor = state.last_review_at or state.next_review_at
        elapsed = max(0.0, memory_state.elapsed_days_between(anchor, now))
        retrievability = memory_state.calculate_retrievability(elapsed, state.stability, weights)
        if retrievability <= target_retention:
            due.append(DueCard(card_id=card_id, retrievability=retrievability, state=state))

    due.sort(key=lambda c: c.retrievability)
    return due


def format_interval_message(days: float) -> str:
    """Human-readable description of an interval in days."""
    if days < 1:
        hours = round(days * HOURS_PER_DAY)
        if hours < 1:
            return "Review again soon"
        return f"Review in {hours} hour{'s' if hours != 1 else ''}"

    rounded = round(days)
    if rounded == 1:
        return "Review tomorrow"
    if rounded < DAYS_PER_WEEK:
        return f"Review in {rounded} days"
    if rounded < DAYS_PER_MONTH:
        weeks = round(rounded / DAYS_PER_WEEK)
        return f"Review in {weeks} week{'s' if weeks != 1 else ''}"
    months = round(rounded / DAYS_PER_MONTH)
    return f"Review in {months} month{'s' if months != 1 else ''}"
