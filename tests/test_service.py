"""
Tests for MetricsAggregator: summaries, windows, and category stats.
"""

from datetime import date, timedelta

import pytest

from recall_core.analytics import MetricsAggregator
from recall_core.analytics.service import normalize_days
from recall_core.errors import CategoryNotFoundError
from recall_core.schemas import CardCategory, Category


@pytest.fixture
def aggregator():
    return MetricsAggregator()


class TestNormalizeDays:
    @pytest.mark.parametrize("days, expected", [
        (7, 7),
        (90, 90),
        (0, 30),
        (-5, 30),
        (None, 30),
        ("14", 30),
        (2.5, 30),
        (True, 30),
        (365, 365),
        (366, 365),
        (400000, 365),
    ])
    def test_normalize(self, days, expected):
        assert normalize_days(days) == expected


class TestSummary:
    def test_current_vs_previous_period(self, aggregator, make_review, now, today):
        current = [
            make_review(now - timedelta(days=1, minutes=i), rating=3 if i % 10 else 1)
            for i in range(220)
        ]
        previous = [make_review(now - timedelta(days=40, minutes=i)) for i in range(100)]

        summary = aggregator.summary("u1", current + previous, today, days=30)

        assert summary.days == 30
        assert summary.current.review_count == 220
        assert summary.current.fail_count == 22
        assert summary.current.reliability == "high"
        assert summary.previous.review_count == 100
        assert summary.previous.reliability == "medium"
        assert summary.deltas.review_count == 120
        assert summary.deltas.observed_recall_rate == pytest.approx(0.9 - 1.0)

    def test_no_reviews_gives_empty_periods(self, aggregator, today):
        summary = aggregator.summary("u1", [], today)
        assert summary.current.review_count == 0
        assert summary.current.observed_recall_rate is None
        assert summary.current.reliability == "low"
        assert summary.deltas.observed_recall_rate is None

    def test_predicted_recall_is_weighted_by_scored_reviews(self, aggregator, make_review, now, today):
        reviews = [make_review(now - timedelta(days=2), retrievability_before=0.6)]
        reviews += [make_review(now - timedelta(days=1, minutes=i), retrievability_before=0.9) for i in range(3)]
        reviews += [make_review(now - timedelta(days=1, hours=1), retrievability_before=None)]

        summary = aggregator.summary("u1", reviews, today, days=7)

        assert summary.current.avg_predicted_recall == pytest.approx((0.6 + 0.9 * 3) / 4)

    def test_invalid_days_falls_back_to_default(self, aggregator, today):
        assert aggregator.summary("u1", [], today, days=0).days == 30

    def test_huge_days_are_capped(self, aggregator, make_review, now, today):
        reviews = [make_review(now - timedelta(days=400))]

        summary = aggregator.summary("u1", reviews, today, days=400000)

        assert summary.days == 365
        assert summary.previous.review_count == 1

    def test_huge_days_are_capped_for_daily_and_learning_counts(self, aggregator, today):
        assert aggregator.daily_metrics("u1", [], today, days=10**9) == []
        counts = aggregator.learning_vs_graduated("u1", [], today, days=10**9)
        assert counts.learning_review_count == 0


class TestRefresh:
    def test_refresh_is_idempotent(self, aggregator, make_review, now, today):
        reviews = [make_review(now - timedelta(days=d), session_id=f"s{d}") for d in range(5)]

        first = aggregator.refresh("u1", reviews, today)
        second = aggregator.refresh("u1", reviews, today)

        assert first == second
        assert len(aggregator.store.get_daily("u1", date(2026, 1, 1))) == 5
        assert len(aggregator.store.get_sessions("u1")) == 5

    def test_refresh_overwrites_changed_days(self, aggregator, make_review, now, today):
        day_reviews = [make_review(now - timedelta(hours=1))]
        aggregator.refresh("u1", day_reviews, today)
        aggregator.refresh("u1", day_reviews + [make_review(now - timedelta(hours=2), rating=1)], today)

        [row] = aggregator.store.get_daily("u1", today)
        assert row.review_count == 2
        assert row.fail_count == 1

    def test_daily_metrics_newest_first(self, aggregator, make_review, now, today):
        reviews = [make_review(now - timedelta(days=d)) for d in (3, 1, 2)]
        rows = aggregator.daily_metrics("u1", reviews, today, days=7)
        assert [r.metric_date for r in rows] == [date(2026, 3, 14), date(2026, 3, 13), date(2026, 3, 12)]

    def test_session_metrics_are_limited_to_the_window(self, aggregator, make_review, now, today):
        reviews = [
            make_review(now - timedelta(days=2), session_id="recent"),
            make_review(now - timedelta(days=20), session_id="old"),
        ]
        sessions = aggregator.session_metrics("u1", reviews, today, days=7)
        assert [s.session_id for s in sessions] == ["recent"]


class TestWindows:
    def test_review_windows_keep_fixed_labels(self, aggregator, make_review, now, today):
        reviews = [make_review(now - timedelta(hours=1, minutes=i)) for i in range(150)]

        windows = aggregator.windows("u1", reviews, today)

        labels = [(w.window_size, w.review_count, w.reliability) for w in windows.review_windows]
        assert labels == [(100, 100, "low"), (300, 150, "medium"), (1000, 150, "high")]

    def test_session_window_uses_latest_ten_sessions(self, aggregator, make_review, now, today):
        reviews = []
        for s in range(12):
            started = now - timedelta(days=1, hours=s)
            reviews.append(make_review(started, session_id=f"s{s}", rating=3))
            reviews.append(make_review(started + timedelta(minutes=1), session_id=f"s{s}", rating=1))

        window = aggregator.windows("u1", reviews, today).session_window

        assert window.session_count == 10
        assert window.review_count == 20
        assert window.observed_recall_rate == pytest.approx(0.5)
        assert window.avg_fatigue_slope == pytest.approx(-1.0)

    def test_no_history(self, aggregator, today):
        windows = aggregator.windows("u1", [], today)
        assert all(w.review_count == 0 for w in windows.review_windows)
        assert windows.session_window.session_count == 0


class TestLearningVsGraduated:
    def test_counts(self, aggregator, make_review, now, today):
        states = [None, 0, 1, 2, 2, 3]
        reviews = [make_review(now - timedelta(minutes=i), review_state=s) for i, s in enumerate(states)]

        counts = aggregator.learning_vs_graduated("u1", reviews, today)

        assert counts.learning_review_count == 4
        assert counts.graduated_review_count == 2

    def test_reviews_outside_the_window_are_ignored(self, aggregator, make_review, now, today):
        reviews = [make_review(now - timedelta(days=60), review_state=2)]
        counts = aggregator.learning_vs_graduated("u1", reviews, today)
        assert counts.graduated_review_count == 0


class TestStudyStatsByCategory:
    @pytest.fixture
    def categories(self):
        return [
            Category(id="cat1", user_id="u1", name="Verbs"),
            Category(id="cat2", user_id="u2", name="Nouns"),
        ]

    @pytest.fixture
    def memberships(self):
        return [
            CardCategory(card_id="c1", category_id="cat1"),
            CardCategory(card_id="c2", category_id="cat2"),
        ]

    def test_stats_cover_only_category_cards(self, aggregator, make_review, now, today,
                                             categories, memberships):
        reviews = [
            make_review(now - timedelta(hours=1), card_id="c1", review_state=2),
            make_review(now - timedelta(days=1), card_id="c1", rating=1),
            make_review(now - timedelta(hours=2), card_id="c2"),
            make_review(now - timedelta(hours=3), card_id="c3"),
        ]

        stats = aggregator.study_stats_by_category(
            "u1", "cat1", reviews, categories, memberships, today, days=7
        )

        assert stats.category_id == "cat1"
        assert stats.summary.current.review_count == 2
        assert stats.summary.current.fail_count == 1
        assert [d.metric_date for d in stats.daily] == [date(2026, 3, 15), date(2026, 3, 14)]
        assert stats.learning_vs_graduated.graduated_review_count == 1
        assert stats.learning_vs_graduated.learning_review_count == 1

    def test_category_rows_are_not_stored(self, aggregator, make_review, now, today,
                                          categories, memberships):
        reviews = [make_review(now - timedelta(hours=1), card_id="c1")]
        aggregator.study_stats_by_category("u1", "cat1", reviews, categories, memberships, today)
        assert aggregator.store.get_daily("u1", date(2026, 1, 1)) == []

    def test_unknown_category_raises(self, aggregator, today, categories, memberships):
        with pytest.raises(CategoryNotFoundError, match="missing"):
            aggregator.study_stats_by_category("u1", "missing", [], categories, memberships, today)

    def test_other_users_category_raises(self, aggregator, today, categories, memberships):
        with pytest.raises(CategoryNotFoundError):
            aggregator.study_stats_by_category("u1", "cat2", [], categories, memberships, today)

    def test_empty_category(self, aggregator, today, categories):
        stats = aggregator.study_stats_by_category("u1", "cat1", [], categories, [], today)
        assert stats.summary.current.review_count == 0
        assert stats.daily == []
