"""
Retention Policy - Target Retention Selection

Two pieces:
1. select_target_retention(): pick the target the scheduler uses, given
   the already-resolved boolean flag decision.
2. recommend_target_retention(): nudge a user's target up or down by one
   step based on how well predicted recall matched observed recall.

Neither function reads storage or flags itself; the caller supplies the
summary, the session window and the flag decision.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Literal

from recall_core.analytics.types import MetricsSummary, Reliability, SessionWindowMetric
from recall_core.errors import InvalidInputError
from recall_core.fsrs.constants import DEFAULT_TARGET_RETENTION
from recall_core.fsrs.scheduling import require_target_retention


Confidence = Literal["low", "medium", "high"]

MIN_REVIEWS_FOR_CONFIDENCE = 300
MIN_SESSIONS_FOR_CONFIDENCE = 20
CALIBRATION_GAP = 0.05
HIGH_BRIER_SCORE = 0.22
HIGH_LOAD_REVIEWS = 600
HIGH_LOAD_RECALL = 0.9
HIGH_LOAD_MAX_BRIER = 0.18

# Reason codes
REASON_DISABLED = "adaptive_retention_disabled"
REASON_INSUFFICIENT_EVIDENCE = "insufficient_evidence"
REASON_OBSERVED_BELOW_PREDICTED = "observed_below_predicted"
REASON_OBSERVED_ABOVE_PREDICTED = "observed_above_predicted"
REASON_HIGH_BRIER = "high_brier_score"
REASON_HIGH_LOAD_GOOD_RECALL = "high_load_with_good_recall"
REASON_STABLE = "stable_keep_current"


@dataclass(frozen=True)
class AdaptiveRetentionConfig:
    minimum: float = 0.85
    maximum: float = 0.95
    step: float = 0.01

    def __post_init__(self):
        require_target_retention(self.minimum)
        require_target_retention(self.maximum)
        if self.minimum > self.maximum:
            raise InvalidInputError(
                f"Adaptive retention minimum {self.minimum} exceeds maximum {self.maximum}"
            )
        if not 0.0 < self.step <= 0.1:
            raise InvalidInputError(f"Adaptive retention step must be in (0, 0.1], got {self.step}")


@dataclass(frozen=True)
class WindowMeta:
    review_count: int
    session_count: int
    reliability: Reliability


@dataclass(frozen=True)
class AdaptiveTargetRecommendation:
    enabled: bool
    current_target: float
    recommended_target: float
    confidence: Confidence
    reasons: list[str] = field(default_factory=list)
    window_meta: WindowMeta | None = None


def select_target_retention(
    adaptive_enabled: bool,
    *,
    default_target: float = DEFAULT_TARGET_RETENTION,
    adaptive_target: float | None = None
) -> float:
    """
    Target retention for scheduling.

    The adaptive target is used only when the flag is on and a target has
    actually been recommended; otherwise the default applies.
    """
    if adaptive_enabled and adaptive_target is not None:
        return require_target_retention(adaptive_target)
    return require_target_retention(default_target)


def _round_to_step(value: float, step: float) -> float:
    return round(round(value / step) * step, 10)


def recommend_target_retention(
    current_target: float,
    summary: MetricsSummary,
    session_window: SessionWindowMetric,
    *,
    enabled: bool,
    config: AdaptiveRetentionConfig = AdaptiveRetentionConfig()
) -> AdaptiveTargetRecommendation:
    """
    Recommend a new target retention from calibration evidence.

    Rules, applied in order (each moves the target by one step):
    - observed recall more than 0.05 below predicted -> raise
    - observed recall more than 0.05 above predicted -> lower
    - average Brier score above 0.22 -> raise
    - over 600 reviews with recall above 0.9 and a good Brier score -> lower

    The result is clamped to [config.minimum, config.maximum] and rounded
    to the step. With the policy off, or without enough evidence (fewer
    than 300 reviews and fewer than 20 sessions, or low reliability), the
    current target is kept.

    Args:
        current_target: User's current target retention
        summary: 30-day metrics summary
        session_window: Latest-sessions window
        enabled: Resolved flag decision for this user
        config: Bounds and step size

    Returns:
        AdaptiveTargetRecommendation with reason codes
    """
    current_target = require_target_retention(current_target)
    review_count = session_window.review_count
    session_count = session_window.session_count
    reliability = summary.current.reliability
    meta = WindowMeta(review_count=review_count, session_count=session_count, reliability=reliability)

    if not enabled:
        return AdaptiveTargetRecommendation(
            enabled=False,
            current_target=current_target,
            recommended_target=current_target,
            confidence="low",
            reasons=[REASON_DISABLED],
            window_meta=meta,
        )

    enough_evidence = (
        review_count >= MIN_REVIEWS_FOR_CONFIDENCE
        or session_count >= MIN_SESSIONS_FOR_CONFIDENCE
    )
    if not enough_evidence or reliability == "low":
        return AdaptiveTargetRecommendation(
            enabled=True,
            current_target=current_target,
            recommended_target=current_target,
            confidence="low",
            reasons=[REASON_INSUFFICIENT_EVIDENCE],
            window_meta=meta,
        )

    reasons: list[str] = []
    recommended = current_target
    observed = summary.current.observed_recall_rate
    predicted = summary.current.avg_predicted_recall
    brier = summary.current.avg_brier_score

    if observed is not None and predicted is not None:
        gap = observed - predicted
        if gap < -CALIBRATION_GAP:
            recommended += config.step
            reasons.append(REASON_OBSERVED_BELOW_PREDICTED)
        elif gap > CALIBRATION_GAP:
            recommended -= config.step
            reasons.append(REASON_OBSERVED_ABOVE_PREDICTED)

    if brier is not None and brier > HIGH_BRIER_SCORE:
        recommended += config.step
        reasons.append(REASON_HIGH_BRIER)

    if (
        review_count > HIGH_LOAD_REVIEWS
        and observed is not None
        and observed > HIGH_LOAD_RECALL
        and (brier is None or brier < HIGH_LOAD_MAX_BRIER)
    ):
        recommended -= config.step
        reasons.append(REASON_HIGH_LOAD_GOOD_RECALL)

    if not reasons:
        reasons.append(REASON_STABLE)

    recommended = min(config.maximum, max(config.minimum, recommended))
    recommended = _round_to_step(recommended, config.step)

    confidence: Confidence = (
        "high" if reliability == "high" and review_count >= HIGH_LOAD_REVIEWS else "medium"
    )

    return AdaptiveTargetRecommendation(
        enabled=True,
        current_target=current_target,
        recommended_target=recommended,
        confidence=confidence,
        reasons=reasons,
        window_meta=meta,
    )
