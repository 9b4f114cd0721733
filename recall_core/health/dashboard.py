"""
Study-health dashboard: auth refresh health, journey consistency, study API
latency and review throughput for one user over a recent window.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

import pandas as pd

from recall_core.analytics.queries import bucket_days
from recall_core.analytics.types import DayBoundary
from recall_core.fsrs.memory_state import require_aware
from recall_core.health.constants import (
    AUTH_FAILURE_STATUS,
    DASHBOARD_DEFAULT_DAYS,
    DASHBOARD_MAX_DAYS,
    DASHBOARD_SAMPLE_LIMIT,
    LATENCY_PERCENTILES,
    REUSE_DETECTED_OUTCOME,
)
from recall_core.health.consistency import audit_consistency
from recall_core.health.types import (
    AuthRefreshStats,
    DailyThroughput,
    HealthDashboard,
    LatencyStats,
    RouteLatency,
)
from recall_core.schemas import JourneyEvent, OperationalEvent, OperationalMetricType, ReviewOutcome


def load_operational_events_df(
    user_id: str,
    events: Iterable[OperationalEvent],
    since: datetime
) -> pd.DataFrame:
    """
    Load a user's operational events since a cutoff into a dataframe.
    """
    columns = ["metric_type", "route", "status_code", "duration_ms", "created_at", "outcome"]
    rows = [
        {
            "metric_type": e.metric_type.value,
            "route": e.route,
            "status_code": e.status_code,
            "duration_ms": float(e.duration_ms),
            "created_at": e.created_at,
            "outcome": e.outcome,
        }
        for e in events
        if e.user_id == user_id and e.created_at >= since
    ]
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns)


def compute_auth_refresh_stats(events_df: pd.DataFrame) -> AuthRefreshStats:
    if events_df.empty:
        return AuthRefreshStats()
    refresh = events_df[events_df["metric_type"] == OperationalMetricType.AUTH_REFRESH.value]
    total = len(refresh)
    if total == 0:
        return AuthRefreshStats()
    failures = int((refresh["status_code"] >= AUTH_FAILURE_STATUS).sum())
    return AuthRefreshStats(
        total=total,
        failures=failures,
        failure_rate=failures / total,
        reuse_detected=int((refresh["outcome"] == REUSE_DETECTED_OUTCOME).sum()),
    )


def compute_latency_stats(durations: pd.Series) -> LatencyStats:
    """Linear-interpolated p50/p95/p99 of request durations."""
    durations = durations.dropna().astype("float64")
    if durations.empty:
        return LatencyStats()
    return LatencyStats(
        sample_count=len(durations),
        **{
            name: float(durations.quantile(fraction, interpolation="linear"))
            for name, fraction in LATENCY_PERCENTILES.items()
        },
    )


def compute_latency_by_route(study_df: pd.DataFrame) -> list[RouteLatency]:
    if study_df.empty:
        return []
    return [
        RouteLatency(route=str(route), stats=compute_latency_stats(group["duration_ms"]))
        for route, group in study_df.groupby("route", sort=True)
    ]


def compute_throughput_by_day(
    user_id: str,
    outcomes: Iterable[ReviewOutcome],
    since: datetime,
    day_boundary: DayBoundary
) -> list[DailyThroughput]:
    """Reviews per calendar day, newest first."""
    times = [o.reviewed_at for o in outcomes if o.user_id == user_id and o.reviewed_at >= since]
    if not times:
        return []
    days = bucket_days(pd.Series(pd.to_datetime(times, utc=True)), day_boundary)
    counts = days.value_counts().sort_index(ascending=False)
    return [DailyThroughput(day=day, review_count=int(count)) for day, count in counts.items()]


def build_dashboard(
    user_id: str,
    operational_events: Iterable[OperationalEvent],
    review_outcomes: Iterable[ReviewOutcome],
    journey_events: Iterable[JourneyEvent],
    *,
    now: datetime,
    days: int = DASHBOARD_DEFAULT_DAYS,
    day_boundary: DayBoundary = DayBoundary()
) -> HealthDashboard:
    """
    Assemble the study-health dashboard.

    Args:
        user_id: User to report on
        operational_events: Auth-refresh and study-API samples
        review_outcomes: Review rows
        journey_events: Journey rows
        now: Current time (timezone-aware)
        days: Look-back window, clamped to [1, 90]
        day_boundary: Day bucketing for throughput

    Returns:
        HealthDashboard snapshot
    """
    require_aware("now", now)
    days = max(1, min(DASHBOARD_MAX_DAYS, days))
    since = now - timedelta(days=days)
    review_outcomes = list(review_outcomes)

    events_df = load_operational_events_df(user_id, operational_events, since)
    study_df = (
        events_df[events_df["metric_type"] == OperationalMetricType.STUDY_API.value]
        if not events_df.empty else events_df
    )

    consistency = audit_consistency(
        user_id,
        review_outcomes,
        journey_events,
        now=now,
        window_days=days,
        sample_limit=DASHBOARD_SAMPLE_LIMIT,
    )

    return HealthDashboard(
        user_id=user_id,
        days=days,
        generated_at=now,
        auth_refresh=compute_auth_refresh_stats(events_df),
        consistency=consistency,
        latency_overall=compute_latency_stats(study_df["duration_ms"]) if not study_df.empty else LatencyStats(),
        latency_by_route=compute_latency_by_route(study_df),
        throughput_by_day=compute_throughput_by_day(user_id, review_outcomes, since, day_boundary),
    )
