"""
Metric computations for calibration analytics.

All functions are pure: dataframes and metric rows in, metric rows out.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

import pandas as pd

from recall_core.analytics.types import (
    DailyMetric,
    PeriodStats,
    ReliabilityThresholds,
    Reliability,
    ReviewWindowMetric,
    SessionMetric,
    SessionWindowMetric,
    SummaryDeltas,
)


def _round_half_up(value: Optional[float]) -> Optional[int]:
    if value is None:
        return None
    return int(math.floor(value + 0.5))


def _mean(values: pd.Series) -> Optional[float]:
    values = values.dropna()
    if values.empty:
        return None
    return float(values.mean())


def _subtract(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    if current is None or previous is None:
        return None
    return current - previous


def brier_score(
    predicted: Iterable[Optional[float]],
    outcomes: Iterable[float]
) -> Optional[float]:
    """
    Mean squared error between predicted recall and the binary outcome.

    Rows without a prediction are ignored. Returns None when no row is scored.
    """
    frame = pd.DataFrame({
        "predicted": pd.Series(list(predicted), dtype="float64"),
        "outcome": pd.Series(list(outcomes), dtype="float64"),
    })
    scored = frame.dropna(subset=["predicted"])
    if scored.empty:
        return None
    return float(((scored["predicted"] - scored["outcome"]) ** 2).mean())


def percentile_cont(values: pd.Series, fraction: float) -> Optional[float]:
    """Continuous (linear-interpolated) percentile, ignoring missing values."""
    values = values.dropna()
    if values.empty:
        return None
    return float(values.quantile(fraction, interpolation="linear"))


def fatigue_slope(outcomes: Sequence[float]) -> Optional[float]:
    """
    OLS slope of outcome (1 pass / 0 fail) on 1-based review index.

    A negative slope means recall degrades as the session goes on.
    None for fewer than 2 reviews.
    """
    n = len(outcomes)
    if n < 2:
        return None
    x = pd.Series(range(1, n + 1), dtype="float64")
    y = pd.Series(list(outcomes), dtype="float64")
    dx = x - x.mean()
    return float((dx * (y - y.mean())).sum() / (dx ** 2).sum())


def compute_daily_metrics(user_id: str, reviews_df: pd.DataFrame) -> list[DailyMetric]:
    """
    One DailyMetric per calendar day present in the reviews frame.
    """
    if reviews_df.empty:
        return []

    rows: list[DailyMetric] = []
    for metric_date, day in reviews_df.groupby("metric_date", sort=True):
        review_count = len(day)
        pass_count = int((day["outcome"] == 1.0).sum())
        durations = day["review_duration_ms"]

        rows.append(DailyMetric(
            user_id=user_id,
            metric_date=metric_date,
            review_count=review_count,
            pass_count=pass_count,
            fail_count=review_count - pass_count,
            scored_count=int(day["retrievability_before"].notna().sum()),
            avg_predicted_recall=_mean(day["retrievability_before"]),
            observed_recall_rate=pass_count / review_count,
            brier_score=brier_score(day["retrievability_before"], day["outcome"]),
            mean_review_duration_ms=_mean(durations),
            p50_review_duration_ms=_round_half_up(percentile_cont(durations, 0.5)),
            p90_review_duration_ms=_round_half_up(percentile_cont(durations, 0.9)),
            avg_elapsed_days=_mean(day["elapsed_days"]),
            avg_scheduled_days=_mean(day["scheduled_days"]),
            session_count=int(day["session_id"].dropna().nunique()),
        ))
    return rows


def compute_session_metrics(user_id: str, reviews_df: pd.DataFrame) -> list[SessionMetric]:
    """
    One SessionMetric per session id in the reviews frame.

    Reviews without a session id are skipped. Reviews are indexed in
    review-time order for the fatigue slope.
    """
    if reviews_df.empty:
        return []

    scoped = reviews_df[reviews_df["session_id"].notna()]
    if scoped.empty:
        return []

    rows: list[SessionMetric] = []
    for session_id, session in scoped.groupby("session_id", sort=True):
        session = session.sort_values("reviewed_at", kind="stable")
        review_count = len(session)
        pass_count = int((session["outcome"] == 1.0).sum())
        started = session["shown_at"].fillna(session["reviewed_at"]).min()
        ended = session["reviewed_at"].max()

        rows.append(SessionMetric(
            user_id=user_id,
            session_id=str(session_id),
            session_date=min(session["metric_date"]),
            session_started_at=None if pd.isna(started) else started.to_pydatetime(),
            session_ended_at=None if pd.isna(ended) else ended.to_pydatetime(),
            review_count=review_count,
            pass_count=pass_count,
            fail_count=review_count - pass_count,
            avg_predicted_recall=_mean(session["retrievability_before"]),
            observed_recall_rate=pass_count / review_count,
            brier_score=brier_score(session["retrievability_before"], session["outcome"]),
            mean_review_duration_ms=_mean(session["review_duration_ms"]),
            fatigue_slope=fatigue_slope(session["outcome"].tolist()),
        ))
    return rows


def aggregate_period(
    daily_rows: Iterable[DailyMetric],
    thresholds: ReliabilityThresholds = ReliabilityThresholds()
) -> PeriodStats:
    """
    Roll daily rows up into one period.

    Predicted recall and Brier score are weighted by each day's scored
    review count, so the result equals the per-review mean. Rates are None
    when the period has no reviews.
    """
    rows = list(daily_rows)
    review_count = sum(r.review_count for r in rows)
    pass_count = sum(r.pass_count for r in rows)
    fail_count = sum(r.fail_count for r in rows)

    scored = [r for r in rows if r.scored_count > 0 and r.avg_predicted_recall is not None]
    scored_count = sum(r.scored_count for r in scored)

    avg_predicted = None
    avg_brier = None
    if review_count > 0 and scored_count > 0:
        avg_predicted = sum(r.avg_predicted_recall * r.scored_count for r in scored) / scored_count
        avg_brier = sum((r.brier_score or 0.0) * r.scored_count for r in scored) / scored_count

    return PeriodStats(
        review_count=review_count,
        pass_count=pass_count,
        fail_count=fail_count,
        observed_recall_rate=pass_count / review_count if review_count > 0 else None,
        avg_predicted_recall=avg_predicted,
        avg_brier_score=avg_brier,
        reliability=thresholds.classify(review_count),
    )


def compute_deltas(current: PeriodStats, previous: PeriodStats) -> SummaryDeltas:
    return SummaryDeltas(
        review_count=current.review_count - previous.review_count,
        pass_count=current.pass_count - previous.pass_count,
        fail_count=current.fail_count - previous.fail_count,
        observed_recall_rate=_subtract(current.observed_recall_rate, previous.observed_recall_rate),
        avg_predicted_recall=_subtract(current.avg_predicted_recall, previous.avg_predicted_recall),
        avg_brier_score=_subtract(current.avg_brier_score, previous.avg_brier_score),
    )


def compute_review_window(
    reviews_df: pd.DataFrame,
    window_size: int,
    reliability: Reliability
) -> ReviewWindowMetric:
    """
    Calibration over the latest `window_size` reviews.

    The reliability label belongs to the window size, not to how many
    reviews actually fill it.
    """
    latest = reviews_df.tail(window_size) if not reviews_df.empty else reviews_df
    review_count = len(latest)
    if review_count == 0:
        return ReviewWindowMetric(
            window_size=window_size,
            review_count=0,
            pass_count=0,
            fail_count=0,
            observed_recall_rate=None,
            avg_predicted_recall=None,
            brier_score=None,
            reliability=reliability,
        )

    pass_count = int((latest["outcome"] == 1.0).sum())
    return ReviewWindowMetric(
        window_size=window_size,
        review_count=review_count,
        pass_count=pass_count,
        fail_count=review_count - pass_count,
        observed_recall_rate=pass_count / review_count,
        avg_predicted_recall=_mean(latest["retrievability_before"]),
        brier_score=brier_score(latest["retrievability_before"], latest["outcome"]),
        reliability=reliability,
    )


def compute_session_window(sessions: Sequence[SessionMetric]) -> SessionWindowMetric:
    """Aggregate over the given (latest) sessions."""
    if not sessions:
        return SessionWindowMetric()

    review_count = sum(s.review_count for s in sessions)
    pass_count = sum(s.pass_count for s in sessions)
    briers = [s.brier_score for s in sessions if s.brier_score is not None]
    slopes = [s.fatigue_slope for s in sessions if s.fatigue_slope is not None]

    return SessionWindowMetric(
        session_count=len(sessions),
        review_count=review_count,
        observed_recall_rate=pass_count / review_count if review_count > 0 else None,
        avg_brier_score=sum(briers) / len(briers) if briers else None,
        avg_fatigue_slope=sum(slopes) / len(slopes) if slopes else None,
    )


def count_learning_vs_graduated(reviews_df: pd.DataFrame, graduated_states: Iterable[int]) -> tuple[int, int]:
    """
    (learning, graduated) review counts.

    Unset review states count as learning.
    """
    if reviews_df.empty:
        return 0, 0
    states = {int(s) for s in graduated_states}
    graduated = int(reviews_df["review_state"].map(
        lambda s: not pd.isna(s) and int(s) in states
    ).sum())
    return len(reviews_df) - graduated, graduated
