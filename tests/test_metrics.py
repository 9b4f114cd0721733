"""
Tests for the pure metric computations and day bucketing.
"""

from datetime import date, datetime, timedelta, timezone

import pandas as pd
import pytest

from recall_core.analytics.metrics import (
    aggregate_period,
    brier_score,
    compute_daily_metrics,
    compute_deltas,
    compute_review_window,
    compute_session_metrics,
    compute_session_window,
    count_learning_vs_graduated,
    fatigue_slope,
    percentile_cont,
)
from recall_core.analytics.queries import load_review_outcomes_df
from recall_core.analytics.types import DayBoundary, PeriodStats, ReliabilityThresholds
from recall_core.errors import InvalidInputError


class TestBrierScore:
    def test_mean_squared_error_over_scored_rows(self):
        assert brier_score([0.9, None, 0.2], [1.0, 0.0, 0.0]) == pytest.approx(0.025)

    def test_perfect_prediction_scores_zero(self):
        assert brier_score([1.0, 0.0], [1.0, 0.0]) == 0.0

    def test_nothing_scored_is_none(self):
        assert brier_score([None, None], [1.0, 0.0]) is None
        assert brier_score([], []) is None


class TestFatigueSlope:
    def test_declining_recall_gives_negative_slope(self):
        assert fatigue_slope([1, 1, 0, 0]) == pytest.approx(-0.4)

    def test_constant_recall_gives_flat_slope(self):
        assert fatigue_slope([1, 1, 1]) == pytest.approx(0.0)

    def test_single_review_has_no_slope(self):
        assert fatigue_slope([1]) is None
        assert fatigue_slope([]) is None


class TestPercentile:
    def test_linear_interpolation(self):
        values = pd.Series([100.0, 200.0, 300.0, 400.0])
        assert percentile_cont(values, 0.5) == pytest.approx(250.0)
        assert percentile_cont(values, 0.9) == pytest.approx(370.0)

    def test_empty_is_none(self):
        assert percentile_cont(pd.Series([None], dtype="float64"), 0.5) is None


class TestDayBucketing:
    def test_day_start_hour_moves_early_reviews_to_previous_day(self, make_review):
        review = make_review(datetime(2026, 3, 15, 2, 0, tzinfo=timezone.utc))
        df = load_review_outcomes_df("u1", [review], DayBoundary(day_start_hour=4))
        assert df["metric_date"].iloc[0] == date(2026, 3, 14)

    def test_timezone_conversion(self, make_review):
        review = make_review(datetime(2026, 3, 15, 3, 0, tzinfo=timezone.utc))
        df = load_review_outcomes_df("u1", [review], DayBoundary(timezone="America/New_York"))
        assert df["metric_date"].iloc[0] == date(2026, 3, 14)

    def test_other_users_are_dropped(self, make_review):
        reviews = [
            make_review(datetime(2026, 3, 15, 9, tzinfo=timezone.utc)),
            make_review(datetime(2026, 3, 15, 9, tzinfo=timezone.utc), user_id="u2"),
        ]
        assert len(load_review_outcomes_df("u1", reviews)) == 1

    def test_no_reviews_gives_empty_frame(self):
        assert load_review_outcomes_df("u1", []).empty

    def test_invalid_day_start_hour_is_rejected(self):
        with pytest.raises(InvalidInputError):
            DayBoundary(day_start_hour=24)


class TestDailyAndSessionMetrics:
    @pytest.fixture
    def day_df(self, make_review):
        base = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)
        reviews = [
            make_review(base, rating=3, retrievability_before=0.9, review_duration_ms=100,
                        session_id="s1", shown_at=base - timedelta(seconds=30)),
            make_review(base + timedelta(minutes=1), rating=3, retrievability_before=0.8,
                        review_duration_ms=200, session_id="s1"),
            make_review(base + timedelta(minutes=2), rating=1, retrievability_before=0.7,
                        review_duration_ms=300, session_id="s1"),
            make_review(base + timedelta(minutes=3), rating=1, retrievability_before=None,
                        review_duration_ms=400, session_id="s2"),
        ]
        return load_review_outcomes_df("u1", reviews)

    def test_daily_row(self, day_df):
        [row] = compute_daily_metrics("u1", day_df)

        assert row.metric_date == date(2026, 3, 10)
        assert (row.review_count, row.pass_count, row.fail_count) == (4, 2, 2)
        assert row.scored_count == 3
        assert row.observed_recall_rate == pytest.approx(0.5)
        assert row.avg_predicted_recall == pytest.approx(0.8)
        assert row.brier_score == pytest.approx((0.01 + 0.04 + 0.49) / 3)
        assert row.mean_review_duration_ms == pytest.approx(250.0)
        assert row.p50_review_duration_ms == 250
        assert row.p90_review_duration_ms == 370
        assert row.session_count == 2

    def test_session_rows(self, day_df):
        sessions = {s.session_id: s for s in compute_session_metrics("u1", day_df)}

        s1 = sessions["s1"]
        assert s1.review_count == 3
        assert s1.session_started_at == datetime(2026, 3, 10, 8, 59, 30, tzinfo=timezone.utc)
        assert s1.session_ended_at == datetime(2026, 3, 10, 9, 2, tzinfo=timezone.utc)
        assert s1.fatigue_slope == pytest.approx(-0.5)
        assert sessions["s2"].fatigue_slope is None
        assert sessions["s2"].brier_score is None

    def test_reviews_without_session_are_not_sessions(self, make_review):
        df = load_review_outcomes_df("u1", [make_review(datetime(2026, 3, 10, tzinfo=timezone.utc))])
        assert compute_session_metrics("u1", df) == []


class TestPeriodAggregation:
    def test_empty_period_has_no_rates(self):
        stats = aggregate_period([])
        assert stats.review_count == 0
        assert stats.observed_recall_rate is None
        assert stats.avg_predicted_recall is None
        assert stats.avg_brier_score is None
        assert stats.reliability == "low"

    def test_reliability_bands(self):
        thresholds = ReliabilityThresholds(medium_min=50, high_min=200)
        assert thresholds.classify(49) == "low"
        assert thresholds.classify(50) == "medium"
        assert thresholds.classify(199) == "medium"
        assert thresholds.classify(200) == "high"

    def test_reliability_thresholds_must_be_ordered(self):
        with pytest.raises(InvalidInputError):
            ReliabilityThresholds(medium_min=300, high_min=200)

    def test_deltas_subtract_field_by_field(self):
        current = PeriodStats(review_count=220, pass_count=200, fail_count=20,
                              observed_recall_rate=0.9, avg_predicted_recall=None)
        previous = PeriodStats(review_count=100, pass_count=80, fail_count=20,
                               observed_recall_rate=0.8, avg_predicted_recall=0.85)
        deltas = compute_deltas(current, previous)
        assert deltas.review_count == 120
        assert deltas.pass_count == 120
        assert deltas.fail_count == 0
        assert deltas.observed_recall_rate == pytest.approx(0.1)
        assert deltas.avg_predicted_recall is None


class TestWindows:
    def test_window_label_is_fixed_by_size(self, make_review):
        base = datetime(2026, 3, 1, tzinfo=timezone.utc)
        reviews = [make_review(base + timedelta(minutes=i), rating=1 if i < 50 else 3) for i in range(150)]
        df = load_review_outcomes_df("u1", reviews)

        latest_100 = compute_review_window(df, 100, "low")
        assert latest_100.review_count == 100
        assert latest_100.pass_count == 100
        assert latest_100.reliability == "low"

        latest_1000 = compute_review_window(df, 1000, "high")
        assert latest_1000.review_count == 150
        assert latest_1000.observed_recall_rate == pytest.approx(100 / 150)
        assert latest_1000.reliability == "high"

    def test_empty_window(self):
        window = compute_review_window(load_review_outcomes_df("u1", []), 300, "medium")
        assert window.review_count == 0
        assert window.observed_recall_rate is None
        assert window.reliability == "medium"

    def test_empty_session_window(self):
        window = compute_session_window([])
        assert window.session_count == 0
        assert window.observed_recall_rate is None


class TestLearningVsGraduated:
    def test_unset_states_count_as_learning(self, make_review):
        base = datetime(2026, 3, 1, tzinfo=timezone.utc)
        states = [None, 0, 1, 2, 2, 3]
        reviews = [make_review(base + timedelta(minutes=i), review_state=s) for i, s in enumerate(states)]
        df = load_review_outcomes_df("u1", reviews)
        assert count_learning_vs_graduated(df, {2}) == (4, 2)
