"""
Data-loading helpers for analytics.

Turns already-materialized review records into dataframes bucketed by the
user's calendar day.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Optional

import pandas as pd

from recall_core.analytics.constants import REVIEW_COLUMNS
from recall_core.analytics.types import DayBoundary
from recall_core.schemas import ReviewOutcome


def empty_review_df() -> pd.DataFrame:
    return pd.DataFrame(columns=REVIEW_COLUMNS)


def bucket_days(timestamps: pd.Series, day_boundary: DayBoundary) -> pd.Series:
    """
    Calendar day for each UTC timestamp under the user's timezone and
    day-start hour.
    """
    local = timestamps.dt.tz_convert(day_boundary.timezone)
    shifted = local - pd.Timedelta(hours=day_boundary.day_start_hour)
    return shifted.dt.date


def load_review_outcomes_df(
    user_id: str,
    outcomes: Iterable[ReviewOutcome],
    day_boundary: DayBoundary = DayBoundary()
) -> pd.DataFrame:
    """
    Load a user's review outcomes into a dataframe sorted by review time.

    Adds an `outcome` column (1.0 pass, 0.0 fail) and a `metric_date`
    column holding the user's calendar day.
    """
    rows = [o for o in outcomes if o.user_id == user_id]
    if not rows:
        return empty_review_df()

    df = pd.DataFrame([
        {
            "id": o.id,
            "card_id": o.card_id,
            "rating": o.rating,
            "reviewed_at": o.reviewed_at,
            "shown_at": o.shown_at,
            "review_duration_ms": o.review_duration_ms,
            "elapsed_days": o.elapsed_days,
            "scheduled_days": o.scheduled_days,
            "retrievability_before": o.retrievability_before,
            "session_id": o.session_id,
            "review_state": None if o.review_state is None else int(o.review_state),
        }
        for o in rows
    ])

    df["reviewed_at"] = pd.to_datetime(df["reviewed_at"], utc=True)
    df["shown_at"] = pd.to_datetime(df["shown_at"], utc=True)
    for column in ("review_duration_ms", "elapsed_days", "scheduled_days", "retrievability_before"):
        df[column] = pd.to_numeric(df[column], errors="coerce").astype("float64")
    df["outcome"] = (df["rating"] >= 2).astype("float64")
    df["metric_date"] = bucket_days(df["reviewed_at"], day_boundary)
    df = df.sort_values("reviewed_at", kind="stable").reset_index(drop=True)
    return df[REVIEW_COLUMNS]


def window_start(today: date, days: int) -> date:
    """First day of a `days`-long window ending on `today` (inclusive)."""
    return today - timedelta(days=days - 1)


def filter_date_range(
    df: pd.DataFrame,
    start: date,
    end: Optional[date] = None
) -> pd.DataFrame:
    """Rows whose metric_date falls in [start, end]."""
    if df.empty:
        return df
    mask = df["metric_date"] >= start
    if end is not None:
        mask &= df["metric_date"] <= end
    return df[mask]


def filter_cards(df: pd.DataFrame, card_ids: set[str]) -> pd.DataFrame:
    if df.empty:
        return df
    return df[df["card_id"].isin(card_ids)]
