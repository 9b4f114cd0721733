"""
Print a calibration and study-health report for one user.

Reads JSON Lines exports (one record per line) of review outcomes, and
optionally journey events and operational events.

Usage:
  python scripts/health_report.py --user u1 --reviews reviews.jsonl \
      --journey journey.jsonl --operational ops.jsonl --days 30

Optional RECALL_* settings are read from the environment / .env.
"""

from __future__ import annotations

import argparse
import sys
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from recall_core.analytics import DayBoundary, MetricsAggregator, SqlMetricsStore
from recall_core.config import load_settings
from recall_core.health import build_dashboard, evaluate_alerts
from recall_core.logging_setup import setup_logging
from recall_core.schemas import JourneyEvent, OperationalEvent, ReviewOutcome


def _load_records(path: Optional[str], model):
    """Load a JSONL export into pydantic records (empty when no path)."""
    if not path:
        return []
    df = pd.read_json(path, lines=True, dtype=False, convert_dates=False)
    records = []
    for row in df.to_dict(orient="records"):
        clean = {
            key: None if isinstance(value, float) and math.isnan(value) else value
            for key, value in row.items()
        }
        records.append(model.model_validate(clean))
    return records


def _fmt(value, digits: int = 3) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:.{digits}f}"
    return str(value)


def health_report(
    user_id: str,
    reviews_path: str,
    journey_path: Optional[str],
    operational_path: Optional[str],
    days: int,
    timezone_name: str,
    day_start_hour: int,
    database_url: Optional[str]
) -> None:
    settings = load_settings()
    now = datetime.now(timezone.utc)
    day_boundary = DayBoundary(timezone=timezone_name, day_start_hour=day_start_hour)
    today = (pd.Timestamp(now).tz_convert(timezone_name) - pd.Timedelta(hours=day_start_hour)).date()

    reviews = _load_records(reviews_path, ReviewOutcome)
    journey = _load_records(journey_path, JourneyEvent)
    operational = _load_records(operational_path, OperationalEvent)
    print(f"Loaded {len(reviews)} reviews, {len(journey)} journey events, {len(operational)} operational events\n")

    store = SqlMetricsStore.from_url(database_url) if database_url else None
    aggregator = MetricsAggregator(
        store=store,
        reliability_thresholds=settings.reliability_thresholds,
        day_boundary=day_boundary,
    )

    summary = aggregator.summary(user_id, reviews, today, days)
    print(f"{'='*60}")
    print(f"Calibration summary - last {summary.days} days (user {user_id})")
    print(f"{'='*60}")
    print(f"{'':24}{'current':>12}{'previous':>12}{'delta':>12}")
    for label, field in (
        ("Reviews", "review_count"),
        ("Passes", "pass_count"),
        ("Fails", "fail_count"),
        ("Observed recall", "observed_recall_rate"),
        ("Predicted recall", "avg_predicted_recall"),
        ("Brier score", "avg_brier_score"),
    ):
        print(
            f"{label:24}"
            f"{_fmt(getattr(summary.current, field)):>12}"
            f"{_fmt(getattr(summary.previous, field)):>12}"
            f"{_fmt(getattr(summary.deltas, field)):>12}"
        )
    print(f"Reliability: {summary.current.reliability}\n")

    windows = aggregator.windows(user_id, reviews, today)
    print("Review windows:")
    for window in windows.review_windows:
        print(
            f"  last {window.window_size:>5}: {window.review_count:>5} reviews, "
            f"recall {_fmt(window.observed_recall_rate)}, brier {_fmt(window.brier_score)} "
            f"({window.reliability})"
        )
    session_window = windows.session_window
    print(
        f"  last {session_window.session_count} sessions: {session_window.review_count} reviews, "
        f"fatigue slope {_fmt(session_window.avg_fatigue_slope, 4)}\n"
    )

    dashboard = build_dashboard(
        user_id, operational, reviews, journey,
        now=now, days=days, day_boundary=day_boundary,
    )
    consistency = dashboard.consistency
    print(f"{'='*60}")
    print(f"Journey consistency - last {consistency.days} days")
    print(f"{'='*60}")
    print(f"Level:         {consistency.health_level}")
    print(f"Mismatch rate: {consistency.mismatch_rate:.4f}")
    print(f"Missing:       {consistency.missing_count}")
    print(f"Duplicate:     {consistency.duplicate_count}")
    print(f"Ordering:      {consistency.ordering_issue_count}\n")

    report = evaluate_alerts(dashboard, settings.alert_thresholds)
    print(f"{'='*60}")
    print(f"Alerts ({report.triggered_count} triggered, highest: {report.highest_severity or 'none'})")
    print(f"{'='*60}")
    for alert in report.alerts:
        marker = "✗" if alert.triggered else "✓"
        print(f"  {marker} [{alert.severity}] {alert.id}: {_fmt(alert.value)} (threshold {_fmt(alert.threshold)})")


def main():
    parser = argparse.ArgumentParser(
        description="Print calibration metrics, journey consistency and health alerts for a user"
    )
    parser.add_argument("--user", required=True, help="User id to report on")
    parser.add_argument("--reviews", required=True, help="JSONL export of review outcomes")
    parser.add_argument("--journey", help="JSONL export of journey events")
    parser.add_argument("--operational", help="JSONL export of operational events")
    parser.add_argument(
        "--days",
        type=int,
        default=30,
        help="Report window in days (default: 30)"
    )
    parser.add_argument("--timezone", default="UTC", help="User timezone for day bucketing")
    parser.add_argument(
        "--day-start-hour",
        type=int,
        default=0,
        help="Local hour at which a new study day starts"
    )
    parser.add_argument(
        "--database-url",
        help="Persist derived metrics to this database (default: in memory)"
    )
    parser.add_argument("--log-level", help="Override RECALL_LOG_LEVEL")

    args = parser.parse_args()
    setup_logging(args.log_level)

    health_report(
        user_id=args.user,
        reviews_path=args.reviews,
        journey_path=args.journey,
        operational_path=args.operational,
        days=args.days,
        timezone_name=args.timezone,
        day_start_hour=args.day_start_hour,
        database_url=args.database_url
    )


if __name__ == "__main__":
    main()
