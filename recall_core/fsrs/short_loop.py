"""
Short-Loop Policy - Same-Day Reinsertion for Fresh and Shaky Cards

Decides, after a rating, whether a card comes back later in today's
session (and after how many seconds), is deferred to a later day, or
graduates to normal FSRS scheduling.

Candidates are new cards, cards marked important, and any card rated
Again or Hard. A candidate is:
- deferred once it has hit the per-mode daily repetition cap
- deferred when the session looks fatigued and it was seen twice today
- graduated on a passing rating after a previous success today
- otherwise reinserted after an adaptive gap

Like the retention policy, nothing here reads storage or flags: the caller
passes today's loop row, the session fatigue and the resolved flag, and
persists the returned next loop row.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Literal, Optional
import logging

from recall_core.errors import InvalidInputError
from recall_core.flags import DAY1_SHORT_LOOP_POLICY, FeatureGate
from recall_core.fsrs.constants import Rating
from recall_core.fsrs.memory_state import MemoryState, require_finite, require_rating
from recall_core.schemas import ReviewOutcome

logger = logging.getLogger(__name__)


StudyIntensityMode = Literal["light", "default", "intensive"]
ShortLoopAction = Literal["reinsert_today", "defer", "graduate_to_fsrs"]

ACTION_REINSERT = "reinsert_today"
ACTION_DEFER = "defer"
ACTION_GRADUATE = "graduate_to_fsrs"

# Reason codes
REASON_DISABLED = "feature_disabled"
REASON_NOT_CANDIDATE = "not_candidate"
REASON_MAX_REPS = "max_reps"
REASON_FATIGUE = "fatigue_throttle"
REASON_GRADUATED = "graduated"
REASON_RETRY = "retry"
REASON_CONFIRM_SUCCESS = "confirm_success"

MIN_GAP_FLOOR_SECONDS = 30
MAX_GAP_FLOOR_SECONDS = 120
FATIGUE_MIN_REVIEWS_TODAY = 2

# 2^20 x the minimum gap is far past any maximum gap
_MAX_DOUBLINGS = 20

_MODE_FACTORS = {"light": 1.35, "default": 1.0, "intensive": 0.8}
_RATING_FACTORS = {Rating.AGAIN: 1.35, Rating.HARD: 1.15, Rating.GOOD: 0.9, Rating.EASY: 0.75}
_IMPORTANT_FACTOR = 0.85


@dataclass(frozen=True)
class ShortLoopConfig:
    enabled: bool = False  # fallback when the flag is not defined for a user
    min_gap_seconds: int = 60
    max_gap_seconds: int = 4 * 60 * 60
    fatigue_threshold: float = 0.72
    max_reps_light: int = 3
    max_reps_default: int = 5
    max_reps_intensive: int = 7

    def __post_init__(self):
        if self.min_gap_seconds < MIN_GAP_FLOOR_SECONDS:
            raise InvalidInputError(
                f"Short-loop minimum gap must be at least {MIN_GAP_FLOOR_SECONDS}s, got {self.min_gap_seconds}"
            )
        if self.max_gap_seconds < max(MAX_GAP_FLOOR_SECONDS, self.min_gap_seconds):
            raise InvalidInputError(
                f"Short-loop maximum gap must be at least {MAX_GAP_FLOOR_SECONDS}s and the "
                f"minimum gap, got {self.max_gap_seconds}"
            )
        threshold = require_finite("fatigue_threshold", self.fatigue_threshold)
        if not 0.0 <= threshold <= 1.0:
            raise InvalidInputError(f"Fatigue threshold must be in [0, 1], got {self.fatigue_threshold}")
        for reps in (self.max_reps_light, self.max_reps_default, self.max_reps_intensive):
            if reps < 1:
                raise InvalidInputError(f"Short-loop repetition caps must be at least 1, got {reps}")

    def max_reps(self, mode: StudyIntensityMode) -> int:
        if mode == "light":
            return self.max_reps_light
        if mode == "intensive":
            return self.max_reps_intensive
        return self.max_reps_default


@dataclass(frozen=True)
class DailyLoopState:
    """One card's short-loop row for one user and one day."""
    iteration: int = 0
    reviews_today: int = 0
    consecutive_successes: int = 0
    consecutive_failures: int = 0
    last_rating: Optional[int] = None
    last_gap_seconds: Optional[int] = None
    fatigue_score: Optional[float] = None
    is_active: bool = False

    def __post_init__(self):
        for name in ("iteration", "reviews_today", "consecutive_successes", "consecutive_failures"):
            if getattr(self, name) < 0:
                raise InvalidInputError(f"{name} must be >= 0, got {getattr(self, name)}")


@dataclass(frozen=True)
class ShortLoopDecision:
    enabled: bool
    action: ShortLoopAction
    reason: str
    next_gap_seconds: Optional[int]
    loop_iteration: int
    fatigue_score: Optional[float]
    intensity_mode: StudyIntensityMode
    next_state: Optional[DailyLoopState] = None  # None when the policy is off


def normalize_mode(mode: Optional[str]) -> StudyIntensityMode:
    if mode == "light" or mode == "intensive":
        return mode
    return "default"


def short_loop_enabled(
    gate: FeatureGate,
    user_id: str,
    config: ShortLoopConfig = ShortLoopConfig()
) -> bool:
    """Resolve the short-loop flag for a user, falling back to config.enabled."""
    return gate.is_enabled(DAY1_SHORT_LOOP_POLICY, user_id, fallback=config.enabled)


def estimate_fatigue(review_count: int, fail_ratio: float, avg_duration_ms: float) -> float:
    """
    Session fatigue in [0, 1].

    Formula:
        F = 0.5 * fail_ratio + 0.3 * min(1, n / 50) + 0.2 * min(1, avg_ms / 12000)

    Returns 0 for a session with no reviews.
    """
    if review_count <= 0:
        return 0.0
    fail_ratio = require_finite("fail_ratio", fail_ratio)
    avg_duration_ms = require_finite("avg_duration_ms", avg_duration_ms)
    fatigue = (
        fail_ratio * 0.5
        + min(1.0, review_count / 50) * 0.3
        + min(1.0, avg_duration_ms / 12000) * 0.2
    )
    return max(0.0, min(1.0, fatigue))


def estimate_session_fatigue(
    outcomes: Iterable[ReviewOutcome],
    user_id: str,
    session_id: Optional[str]
) -> Optional[float]:
    """
    Fatigue for one study session from its review rows.

    Returns None without a session id. Reviews without a duration do not
    count toward the average duration.
    """
    if session_id is None:
        return None

    rows = [o for o in outcomes if o.user_id == user_id and o.session_id == session_id]
    if not rows:
        return 0.0

    fail_ratio = sum(1 for o in rows if o.rating == Rating.AGAIN) / len(rows)
    durations = [o.review_duration_ms for o in rows if o.review_duration_ms is not None]
    avg_duration = sum(durations) / len(durations) if durations else 0.0
    return estimate_fatigue(len(rows), fail_ratio, avg_duration)


def difficulty_factor(prior_state: Optional[MemoryState]) -> float:
    if prior_state is None or prior_state.stability == 0:
        return 1.0
    return max(0.75, min(1.75, prior_state.difficulty / 5.0))


def adaptive_gap_seconds(
    config: ShortLoopConfig,
    prior_state: Optional[MemoryState],
    rating: int,
    iteration: int,
    fatigue_score: Optional[float],
    mode: StudyIntensityMode,
    is_important: bool = False
) -> int:
    """
    Seconds until the card is shown again today.

    Formula:
        gap = min_gap * 2^iteration
              * difficulty * (1 + 0.8 * fatigue) * mode * importance * rating

    Factors: difficulty D/5 clipped to [0.75, 1.75] (1 for a new card);
    mode 1.35 light, 0.8 intensive; 0.85 for important cards; rating 1.35
    Again, 1.15 Hard, 0.9 Good, 0.75 Easy. The result is rounded and
    clipped to [min_gap, max_gap].
    """
    rating = require_rating(rating)
    base = config.min_gap_seconds * 2.0 ** min(max(0, iteration), _MAX_DOUBLINGS)
    gap = (
        base
        * difficulty_factor(prior_state)
        * (1.0 + (fatigue_score or 0.0) * 0.8)
        * _MODE_FACTORS[mode]
        * (_IMPORTANT_FACTOR if is_important else 1.0)
        * _RATING_FACTORS[rating]
    )
    return max(config.min_gap_seconds, min(config.max_gap_seconds, round(gap)))


def evaluate_short_loop(
    prior_state: Optional[MemoryState],
    rating: int,
    *,
    enabled: bool,
    loop_state: Optional[DailyLoopState] = None,
    is_important: bool = False,
    fatigue_score: Optional[float] = None,
    intensity_mode: Optional[str] = None,
    config: ShortLoopConfig = ShortLoopConfig()
) -> ShortLoopDecision:
    """
    Decide what happens to a card after a rating today.

    Args:
        prior_state: Memory state before this rating, None for a new card
        rating: Rating just submitted
        enabled: Resolved flag decision for this user (see short_loop_enabled)
        loop_state: Today's loop row for this card, None if it has none yet
        is_important: Card is marked important by the user
        fatigue_score: Session fatigue (see estimate_session_fatigue)
        intensity_mode: "light", "default" or "intensive" (anything else is default)
        config: Gaps, caps and fatigue threshold

    Returns:
        ShortLoopDecision; next_state is the loop row the caller should store
    """
    rating = require_rating(rating)
    mode = normalize_mode(intensity_mode)
    if fatigue_score is not None:
        fatigue_score = require_finite("fatigue_score", fatigue_score)

    if not enabled:
        return ShortLoopDecision(
            enabled=False,
            action=ACTION_GRADUATE,
            reason=REASON_DISABLED,
            next_gap_seconds=None,
            loop_iteration=0,
            fatigue_score=None,
            intensity_mode=mode,
        )

    state = loop_state or DailyLoopState()
    new_card = prior_state is None or prior_state.stability == 0
    candidate = new_card or is_important or rating <= Rating.HARD
    next_gap: Optional[int] = None

    if not candidate:
        action, reason = ACTION_GRADUATE, REASON_NOT_CANDIDATE
    elif state.reviews_today >= config.max_reps(mode):
        action, reason = ACTION_DEFER, REASON_MAX_REPS
    elif (
        (fatigue_score or 0.0) >= config.fatigue_threshold
        and state.reviews_today >= FATIGUE_MIN_REVIEWS_TODAY
    ):
        action, reason = ACTION_DEFER, REASON_FATIGUE
    elif rating >= Rating.GOOD and state.consecutive_successes >= 1:
        action, reason = ACTION_GRADUATE, REASON_GRADUATED
    else:
        action = ACTION_REINSERT
        reason = REASON_RETRY if rating <= Rating.HARD else REASON_CONFIRM_SUCCESS
        next_gap = adaptive_gap_seconds(
            config, prior_state, rating, state.iteration, fatigue_score, mode, is_important
        )

    next_state = DailyLoopState(
        iteration=state.iteration + 1,
        reviews_today=state.reviews_today + 1,
        consecutive_successes=state.consecutive_successes + 1 if rating >= Rating.GOOD else 0,
        consecutive_failures=state.consecutive_failures + 1 if rating == Rating.AGAIN else 0,
        last_rating=int(rating),
        last_gap_seconds=next_gap,
        fatigue_score=fatigue_score,
        is_active=action == ACTION_REINSERT,
    )

    logger.debug(
        "Short loop rated %s (mode=%s, reviews_today=%d): %s (%s), gap=%s",
        rating.name, mode, state.reviews_today, action, reason, next_gap
    )

    return ShortLoopDecision(
        enabled=True,
        action=action,
        reason=reason,
        next_gap_seconds=next_gap,
        loop_iteration=next_state.iteration,
        fatigue_score=fatigue_score,
        intensity_mode=mode,
        next_state=next_state,
    )
