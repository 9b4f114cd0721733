"""
FSRS - Free Spaced Repetition Scheduler

Memory engine for the flashcard system.

This package implements the FSRS-6 model with:
- Power-law forgetting curve: R = (1 + F * t / S)^(-d)
- Long-Term Memory (LTM) updates for spaced reviews
- Short-Term Memory (STM) updates for same-day reviews
- Interval scheduling for a target retention
- Same-day short-loop reinsertion for fresh and shaky cards
- Interpretable memory state (Stability, Difficulty, Retrievability)

Quick start:
    from recall_core import fsrs

    # Process a review (algorithm only, no DB calls)
    result = fsrs.process_review(prior_state, fsrs.Rating.GOOD, reviewed_at)

    # Get due cards
    due = fsrs.get_due_cards(card_states, now)
"""

# Core scheduler API (algorithm logic)
from recall_core.fsrs.scheduler import (
    DueCard,
    ReviewResult,
    build_review_outcome,
    format_interval_message,
    get_due_cards,
    is_new_card,
    process_review,
)

# Constants and parameters
from recall_core.fsrs.constants import (
    D_MAX,
    D_MIN,
    DEFAULT_TARGET_RETENTION,
    MIN_INTERVAL_DAYS,
    SAME_DAY_THRESHOLD_HOURS,
    Rating,
)
from recall_core.fsrs.weights import DEFAULT_WEIGHTS, WEIGHT_LAYOUTS, FsrsWeights

# Memory state (for advanced usage)
from recall_core.fsrs.memory_state import MemoryState, calculate_retrievability

# Update rules
from recall_core.fsrs.ltm_updates import (
    initial_difficulty,
    initial_stability,
    update_difficulty,
    update_stability_on_failure,
    update_stability_on_success,
)
from recall_core.fsrs.stm_updates import update_stability_same_day
from recall_core.fsrs.scheduling import next_interval_days

# Retention policy
from recall_core.fsrs.retention import (
    AdaptiveRetentionConfig,
    AdaptiveTargetRecommendation,
    recommend_target_retention,
    select_target_retention,
)

# Same-day short loop
from recall_core.fsrs.short_loop import (
    DailyLoopState,
    ShortLoopConfig,
    ShortLoopDecision,
    estimate_session_fatigue,
    evaluate_short_loop,
    short_loop_enabled,
)


__all__ = [
    # Core algorithm
    "process_review",
    "build_review_outcome",
    "get_due_cards",
    "format_interval_message",
    "is_new_card",
    "ReviewResult",
    "DueCard",

    # Enums
    "Rating",

    # Memory state
    "MemoryState",
    "calculate_retrievability",

    # Update rules
    "initial_stability",
    "initial_difficulty",
    "update_difficulty",
    "update_stability_on_success",
    "update_stability_on_failure",
    "update_stability_same_day",
    "next_interval_days",

    # Retention policy
    "select_target_retention",
    "recommend_target_retention",
    "AdaptiveRetentionConfig",
    "AdaptiveTargetRecommendation",

    # Short loop
    "evaluate_short_loop",
    "short_loop_enabled",
    "estimate_session_fatigue",
    "ShortLoopConfig",
    "ShortLoopDecision",
    "DailyLoopState",

    # Parameters
    "FsrsWeights",
    "DEFAULT_WEIGHTS",
    "WEIGHT_LAYOUTS",
    "D_MIN",
    "D_MAX",
    "MIN_INTERVAL_DAYS",
    "DEFAULT_TARGET_RETENTION",
    "SAME_DAY_THRESHOLD_HOURS",
]
