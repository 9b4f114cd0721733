"""
Long-Term Memory (LTM) Updates

Implements stability and difficulty updates for spaced reviews, plus the
initial state of a card seen for the first time.

Key principles:
- Harder material, lower stability and lower retrievability give bigger gains
- A lapse resets stability to a post-lapse value that never exceeds the prior S
- Difficulty moves with the rating and slowly reverts toward the Easy baseline
"""

from __future__ import annotations
import math

from recall_core.errors import InvalidInputError
from recall_core.fsrs.constants import D_MAX, D_MIN, Rating
from recall_core.fsrs.memory_state import (
    require_difficulty,
    require_finite,
    require_positive,
    require_rating,
)
from recall_core.fsrs.weights import DEFAULT_WEIGHTS, FsrsWeights


def clamp_difficulty(value: float) -> float:
    return max(D_MIN, min(D_MAX, value))


def _require_retrievability(value: float) -> float:
    number = require_finite("retrievability", value)
    if not 0.0 <= number <= 1.0:
        raise InvalidInputError(f"retrievability must be in [0, 1], got {value!r}")
    return number


def initial_stability(rating: int, weights: FsrsWeights = DEFAULT_WEIGHTS) -> float:
    """
    Initial stability for a new card: S0(G) = w[G-1].

    Weights are validated at load time, so no clamping happens here.
    """
    rating = require_rating(rating)
    return weights.initial_stabilities[rating - 1]


def _raw_initial_difficulty(rating: int, weights: FsrsWeights) -> float:
    return weights.initial_difficulty_base - math.exp(weights.initial_difficulty_exp * (rating - 1)) + 1.0


def initial_difficulty(rating: int, weights: FsrsWeights = DEFAULT_WEIGHTS) -> float:
    """
    Initial difficulty for a new card.

    Formula:
        D0(G) = clip(w4 - exp(w5 * (G - 1)) + 1, 1, 10)
    """
    rating = require_rating(rating)
    return clamp_difficulty(_raw_initial_difficulty(rating, weights))


def update_difficulty(
    difficulty: float,
    rating: int,
    weights: FsrsWeights = DEFAULT_WEIGHTS
) -> float:
    """
    Update difficulty after a non-initial review.

    Formula:
        delta = -w6 * (G - 3)
        D'    = D + delta * (10 - D) / 9          (linear damping near the cap)
        D''   = w7 * D0(Easy) + (1 - w7) * D'     (mean reversion)
        D_new = clip(D'', 1, 10)

    Again/Hard push difficulty up, Easy pulls it down, Good only reverts.

    Args:
        difficulty: Current difficulty
        rating: Rating of this review
        weights: FSRS weights

    Returns:
        New difficulty value (clipped to [1, 10])
    """
    difficulty = require_difficulty(difficulty)
    rating = require_rating(rating)

    delta = -weights.difficulty_delta * (rating - 3)
    damped = difficulty + delta * (D_MAX - difficulty) / 9.0

    # D0(Easy) is used unclamped as the reversion target
    easy_baseline = _raw_initial_difficulty(Rating.EASY, weights)
    reverted = (
        weights.difficulty_mean_reversion * easy_baseline
        + (1.0 - weights.difficulty_mean_reversion) * damped
    )
    return clamp_difficulty(reverted)


def update_stability_on_success(
    stability: float,
    difficulty: float,
    retrievability: float,
    rating: int = Rating.GOOD,
    weights: FsrsWeights = DEFAULT_WEIGHTS
) -> float:
    """
    Update stability after successful retrieval (Hard/Good/Easy).

    Formula:
        SInc  = e^w8 * (11 - D) * S^(-w9) * (e^(w10 * (1 - R)) - 1)
        S_new = S * (1 + SInc * hard_penalty * easy_bonus)

    Where hard_penalty = w15 for Hard and easy_bonus = w16 for Easy
    (both 1 otherwise).

    Args:
        stability: Current stability (S > 0)
        difficulty: Difficulty used for the update
        retrievability: Retrievability right before the review
        rating: HARD, GOOD or EASY
        weights: FSRS weights

    Returns:
        New stability value
    """
    stability = require_positive("stability", stability)
    difficulty = require_difficulty(difficulty)
    retrievability = _require_retrievability(retrievability)
    rating = require_rating(rating)
    if rating == Rating.AGAIN:
        raise InvalidInputError("Use update_stability_on_failure for AGAIN ratings")

    hard_penalty = weights.hard_penalty if rating == Rating.HARD else 1.0
    easy_bonus = weights.easy_bonus if rating == Rating.EASY else 1.0

    growth = (
        math.exp(weights.success_base)
        * (11.0 - difficulty)
        * stability ** (-weights.success_saturation)
        * (math.exp(weights.success_retrievability * (1.0 - retrievability)) - 1.0)
        * hard_penalty
        * easy_bonus
    )
    return stability * (1.0 + growth)


def update_stability_on_failure(
    stability: float,
    difficulty: float,
    retrievability: float,
    weights: FsrsWeights = DEFAULT_WEIGHTS
) -> float:
    """
    Update stability after failed retrieval (Again).

    Formula:
        S_f   = w11 * D^(-w12) * ((S + 1)^w13 - 1) * e^(w14 * (1 - R))
        S_new = min(S_f, S)

    Args:
        stability: Current stability (S > 0)
        difficulty: Difficulty used for the update
        retrievability: Retrievability right before the review
        weights: FSRS weights

    Returns:
        Post-lapse stability, never above the prior stability
    """
    stability = require_positive("stability", stability)
    difficulty = require_difficulty(difficulty)
    retrievability = _require_retrievability(retrievability)

    post_lapse = (
        weights.failure_base
        * difficulty ** (-weights.failure_difficulty_exp)
        * ((stability + 1.0) ** weights.failure_stability_exp - 1.0)
        * math.exp(weights.failure_retrievability * (1.0 - retrievability))
    )
    return min(post_lapse, stability)


def apply_ltm_update(
    stability: float,
    difficulty: float,
    retrievability: float,
    rating: int,
    weights: FsrsWeights = DEFAULT_WEIGHTS
) -> tuple[float, float]:
    """
    Apply LTM update rules to get new S and D.

    Difficulty is updated first; the stability rule then runs on the new
    difficulty, so a lapse that makes a card harder also shrinks its
    post-lapse stability.

    Returns:
        (new_stability, new_difficulty)
    """
    rating = require_rating(rating)
    new_difficulty = update_difficulty(difficulty, rating, weights)

    if rating == Rating.AGAIN:
        new_stability = update_stability_on_failure(stability, new_difficulty, retrievability, weights)
    else:
        new_stability = update_stability_on_success(
            stability, new_difficulty, retrievability, rating, weights
        )

    return new_stability, new_difficulty
