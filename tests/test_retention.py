"""
Tests for target-retention selection and the adaptive recommendation.
"""

import pytest

from recall_core.analytics.types import (
    MetricsSummary,
    PeriodStats,
    SessionWindowMetric,
    SummaryDeltas,
)
from recall_core.errors import InvalidInputError
from recall_core.fsrs.retention import (
    AdaptiveRetentionConfig,
    recommend_target_retention,
    select_target_retention,
)


def summary_with(observed=0.9, predicted=0.9, brier=0.1, reviews=400, reliability="high"):
    return MetricsSummary(
        days=30,
        current=PeriodStats(
            review_count=reviews,
            pass_count=int(reviews * (observed or 0)),
            fail_count=reviews - int(reviews * (observed or 0)),
            observed_recall_rate=observed,
            avg_predicted_recall=predicted,
            avg_brier_score=brier,
            reliability=reliability,
        ),
        previous=PeriodStats(),
        deltas=SummaryDeltas(),
    )


def window(reviews=400, sessions=25):
    return SessionWindowMetric(session_count=sessions, review_count=reviews)


class TestSelectTargetRetention:
    def test_flag_off_uses_default(self):
        assert select_target_retention(False, default_target=0.9, adaptive_target=0.93) == 0.9

    def test_flag_on_uses_adaptive_target(self):
        assert select_target_retention(True, default_target=0.9, adaptive_target=0.93) == 0.93

    def test_flag_on_without_recommendation_uses_default(self):
        assert select_target_retention(True, default_target=0.88) == 0.88

    def test_invalid_target_is_rejected(self):
        with pytest.raises(InvalidInputError):
            select_target_retention(True, default_target=0.9, adaptive_target=1.2)


class TestRecommendTargetRetention:
    def test_disabled_keeps_current_target(self):
        rec = recommend_target_retention(0.9, summary_with(observed=0.7), window(), enabled=False)
        assert not rec.enabled
        assert rec.recommended_target == 0.9
        assert rec.reasons == ["adaptive_retention_disabled"]
        assert rec.confidence == "low"

    def test_few_reviews_and_sessions_is_insufficient_evidence(self):
        rec = recommend_target_retention(
            0.9, summary_with(observed=0.7), window(reviews=120, sessions=8), enabled=True
        )
        assert rec.recommended_target == 0.9
        assert rec.reasons == ["insufficient_evidence"]
        assert rec.window_meta.review_count == 120

    def test_enough_sessions_alone_is_sufficient(self):
        rec = recommend_target_retention(
            0.9, summary_with(), window(reviews=120, sessions=20), enabled=True
        )
        assert rec.reasons == ["stable_keep_current"]

    def test_low_reliability_is_insufficient_evidence(self):
        rec = recommend_target_retention(
            0.9, summary_with(observed=0.7, reliability="low"), window(), enabled=True
        )
        assert rec.reasons == ["insufficient_evidence"]

    def test_observed_below_predicted_raises_target(self):
        rec = recommend_target_retention(0.9, summary_with(observed=0.8), window(), enabled=True)
        assert rec.recommended_target == pytest.approx(0.91)
        assert rec.reasons == ["observed_below_predicted"]
        assert rec.confidence == "medium"

    def test_observed_above_predicted_and_high_load_lower_target(self):
        rec = recommend_target_retention(
            0.9, summary_with(observed=0.97, reviews=700), window(reviews=700), enabled=True
        )
        assert rec.recommended_target == pytest.approx(0.88)
        assert rec.reasons == ["observed_above_predicted", "high_load_with_good_recall"]
        assert rec.confidence == "high"

    def test_high_brier_raises_target(self):
        rec = recommend_target_retention(0.9, summary_with(brier=0.25), window(), enabled=True)
        assert rec.recommended_target == pytest.approx(0.91)
        assert rec.reasons == ["high_brier_score"]

    def test_result_is_clamped_to_bounds(self):
        rec = recommend_target_retention(0.95, summary_with(observed=0.8), window(), enabled=True)
        assert rec.recommended_target == pytest.approx(0.95)

    def test_custom_step(self):
        rec = recommend_target_retention(
            0.9, summary_with(observed=0.8), window(), enabled=True,
            config=AdaptiveRetentionConfig(step=0.02),
        )
        assert rec.recommended_target == pytest.approx(0.92)

    def test_calibrated_user_keeps_target(self):
        rec = recommend_target_retention(0.9, summary_with(), window(), enabled=True)
        assert rec.recommended_target == pytest.approx(0.9)
        assert rec.reasons == ["stable_keep_current"]


class TestAdaptiveRetentionConfig:
    def test_minimum_above_maximum_is_rejected(self):
        with pytest.raises(InvalidInputError):
            AdaptiveRetentionConfig(minimum=0.95, maximum=0.9)

    def test_step_out_of_range_is_rejected(self):
        with pytest.raises(InvalidInputError):
            AdaptiveRetentionConfig(step=0.5)
