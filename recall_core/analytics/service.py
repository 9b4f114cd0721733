"""
Service layer that assembles calibration metrics for a user.

The aggregator receives review rows from its caller, recomputes the derived
daily/session rows into its store, and answers summary and window queries
from there. It never treats stored rows as authoritative.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, Optional, Union

from recall_core.analytics.constants import (
    DEFAULT_DAYS,
    GRADUATED_STATES,
    MAX_DAYS,
    REVIEW_WINDOWS,
    SESSION_WINDOW_COUNT,
    WINDOW_RELIABILITY,
    WINDOWS_BACKFILL_DAYS,
)
from recall_core.analytics.metrics import (
    aggregate_period,
    compute_daily_metrics,
    compute_deltas,
    compute_review_window,
    compute_session_metrics,
    compute_session_window,
    count_learning_vs_graduated,
)
from recall_core.analytics.queries import (
    filter_cards,
    filter_date_range,
    load_review_outcomes_df,
    window_start,
)
from recall_core.analytics.store import InMemoryMetricsStore, SqlMetricsStore
from recall_core.analytics.types import (
    DailyMetric,
    DayBoundary,
    LearningVsGraduatedCounts,
    MetricsSummary,
    MetricsWindows,
    ReliabilityThresholds,
    SessionMetric,
    StudyStatsByCategory,
)
from recall_core.errors import CategoryNotFoundError
from recall_core.schemas import CardCategory, Category, ReviewOutcome

logger = logging.getLogger(__name__)

MetricsStore = Union[InMemoryMetricsStore, SqlMetricsStore]


def normalize_days(days) -> int:
    """
    Positive integers pass through, capped at MAX_DAYS; anything else
    becomes DEFAULT_DAYS.
    """
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        return DEFAULT_DAYS
    return min(days, MAX_DAYS)


def _summarize(
    daily_rows: list[DailyMetric],
    today: date,
    days: int,
    thresholds: ReliabilityThresholds
) -> MetricsSummary:
    current_start = window_start(today, days)
    previous_end = current_start - timedelta(days=1)
    previous_start = window_start(previous_end, days)

    current = aggregate_period(
        [r for r in daily_rows if current_start <= r.metric_date <= today], thresholds
    )
    previous = aggregate_period(
        [r for r in daily_rows if previous_start <= r.metric_date <= previous_end], thresholds
    )
    return MetricsSummary(
        days=days,
        current=current,
        previous=previous,
        deltas=compute_deltas(current, previous),
    )


class MetricsAggregator:
    """
    Calibration metrics for review outcomes.

    Args:
        store: Where derived daily/session rows are upserted
        reliability_thresholds: Review-count bands for current-period reliability
        day_boundary: User timezone and day-start hour for day bucketing
    """

    def __init__(
        self,
        store: Optional[MetricsStore] = None,
        reliability_thresholds: ReliabilityThresholds = ReliabilityThresholds(),
        day_boundary: DayBoundary = DayBoundary()
    ):
        self.store = store if store is not None else InMemoryMetricsStore()
        self.reliability_thresholds = reliability_thresholds
        self.day_boundary = day_boundary

    def refresh(
        self,
        user_id: str,
        outcomes: Iterable[ReviewOutcome],
        today: date,
        days: int = DEFAULT_DAYS
    ) -> tuple[list[DailyMetric], list[SessionMetric]]:
        """
        Recompute and upsert daily and session rows for the last `days` days.

        Idempotent: running it twice over the same outcomes leaves the same rows.

        Returns:
            (daily rows, session rows) that were written
        """
        days = normalize_days(days)
        reviews_df = load_review_outcomes_df(user_id, outcomes, self.day_boundary)
        recent = filter_date_range(reviews_df, window_start(today, days), today)

        daily_rows = compute_daily_metrics(user_id, recent)
        session_rows = compute_session_metrics(user_id, recent)
        self.store.upsert_daily(daily_rows)
        self.store.upsert_sessions(session_rows)

        logger.info(
            "Refreshed metrics for user %s over %d days: %d daily rows, %d session rows",
            user_id, days, len(daily_rows), len(session_rows)
        )
        return daily_rows, session_rows

    def summary(
        self,
        user_id: str,
        outcomes: Iterable[ReviewOutcome],
        today: date,
        days: int = DEFAULT_DAYS
    ) -> MetricsSummary:
        """
        Current period vs. the preceding period of equal length.

        Refreshes 2 x days first, then aggregates the stored daily rows.
        """
        days = normalize_days(days)
        self.refresh(user_id, outcomes, today, days * 2)
        daily_rows = self.store.get_daily(user_id, window_start(today, days * 2), today)
        return _summarize(daily_rows, today, days, self.reliability_thresholds)

    def daily_metrics(
        self,
        user_id: str,
        outcomes: Iterable[ReviewOutcome],
        today: date,
        days: int = DEFAULT_DAYS
    ) -> list[DailyMetric]:
        """Refresh, then return the stored daily rows, newest first."""
        days = normalize_days(days)
        self.refresh(user_id, outcomes, today, days)
        return self.store.get_daily(user_id, window_start(today, days), today)

    def session_metrics(
        self,
        user_id: str,
        outcomes: Iterable[ReviewOutcome],
        today: date,
        days: int = DEFAULT_DAYS
    ) -> list[SessionMetric]:
        """Refresh, then return the stored session rows, newest first."""
        days = normalize_days(days)
        self.refresh(user_id, outcomes, today, days)
        return self.store.get_sessions(user_id, start=window_start(today, days))

    def windows(
        self,
        user_id: str,
        outcomes: Iterable[ReviewOutcome],
        today: date
    ) -> MetricsWindows:
        """
        Trailing review windows (latest 100/300/1000 reviews) and the
        latest-sessions window.
        """
        outcomes = list(outcomes)
        self.refresh(user_id, outcomes, today, WINDOWS_BACKFILL_DAYS)
        reviews_df = load_review_outcomes_df(user_id, outcomes, self.day_boundary)

        review_windows = [
            compute_review_window(reviews_df, size, WINDOW_RELIABILITY[size])
            for size in REVIEW_WINDOWS
        ]
        latest_sessions = self.store.get_sessions(user_id, limit=SESSION_WINDOW_COUNT)
        return MetricsWindows(
            review_windows=review_windows,
            session_window=compute_session_window(latest_sessions),
        )

    def learning_vs_graduated(
        self,
        user_id: str,
        outcomes: Iterable[ReviewOutcome],
        today: date,
        days: int = DEFAULT_DAYS
    ) -> LearningVsGraduatedCounts:
        days = normalize_days(days)
        reviews_df = load_review_outcomes_df(user_id, outcomes, self.day_boundary)
        recent = filter_date_range(reviews_df, window_start(today, days), today)
        learning, graduated = count_learning_vs_graduated(recent, GRADUATED_STATES)
        return LearningVsGraduatedCounts(
            learning_review_count=learning,
            graduated_review_count=graduated,
        )

    def study_stats_by_category(
        self,
        user_id: str,
        category_id: str,
        outcomes: Iterable[ReviewOutcome],
        categories: Iterable[Category],
        card_categories: Iterable[CardCategory],
        today: date,
        days: int = DEFAULT_DAYS
    ) -> StudyStatsByCategory:
        """
        Summary, daily breakdown and learning/graduated counts restricted to
        reviews of cards in one category.

        Category rows are computed on the fly and never written to the store.

        Raises:
            CategoryNotFoundError: Category does not exist or belongs to
                another user
        """
        days = normalize_days(days)
        owned = any(c.id == category_id and c.user_id == user_id for c in categories)
        if not owned:
            raise CategoryNotFoundError(category_id)

        card_ids = {cc.card_id for cc in card_categories if cc.category_id == category_id}
        reviews_df = filter_cards(
            load_review_outcomes_df(user_id, outcomes, self.day_boundary), card_ids
        )

        both_periods = filter_date_range(reviews_df, window_start(today, days * 2), today)
        daily_rows = compute_daily_metrics(user_id, both_periods)
        summary = _summarize(daily_rows, today, days, self.reliability_thresholds)

        current_start = window_start(today, days)
        current_daily = sorted(
            (r for r in daily_rows if r.metric_date >= current_start),
            key=lambda r: r.metric_date,
            reverse=True,
        )
        learning, graduated = count_learning_vs_graduated(
            filter_date_range(reviews_df, current_start, today), GRADUATED_STATES
        )

        return StudyStatsByCategory(
            category_id=category_id,
            summary=summary,
            daily=current_daily,
            learning_vs_graduated=LearningVsGraduatedCounts(
                learning_review_count=learning,
                graduated_review_count=graduated,
            ),
        )
