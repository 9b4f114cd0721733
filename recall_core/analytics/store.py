"""
Metric Stores - Daily and Session Metric Persistence

Two interchangeable stores with the same methods:
- InMemoryMetricsStore: dict keyed by (user_id, date) / (user_id, session_id)
- SqlMetricsStore: SQLAlchemy ORM, upserts via session.merge()

Upserts are keyed, so re-running a refresh overwrites rows instead of
accumulating them.
"""

from __future__ import annotations
from dataclasses import fields
from datetime import date, datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from recall_core.analytics.models import Base, DailyMetricRow, SessionMetricRow
from recall_core.analytics.types import DailyMetric, SessionMetric

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _session_sort_key(metric: SessionMetric):
    # Newest first once reversed; sessions without a start time sort last
    started = metric.session_started_at
    return (started is not None, started or _EPOCH, metric.session_id)


def _newest_sessions(
    sessions: Iterable[SessionMetric],
    limit: Optional[int] = None
) -> list[SessionMetric]:
    ordered = sorted(sessions, key=_session_sort_key, reverse=True)
    return ordered if limit is None else ordered[:limit]


class InMemoryMetricsStore:
    """Dict-backed store, used by tests and single-process callers."""

    def __init__(self):
        self._daily: dict[tuple[str, date], DailyMetric] = {}
        self._sessions: dict[tuple[str, str], SessionMetric] = {}

    def upsert_daily(self, rows: Iterable[DailyMetric]) -> int:
        count = 0
        for row in rows:
            self._daily[(row.user_id, row.metric_date)] = row
            count += 1
        return count

    def upsert_sessions(self, rows: Iterable[SessionMetric]) -> int:
        count = 0
        for row in rows:
            self._sessions[(row.user_id, row.session_id)] = row
            count += 1
        return count

    def get_daily(self, user_id: str, start: date, end: Optional[date] = None) -> list[DailyMetric]:
        """Daily rows in [start, end], newest first."""
        rows = [
            row for (uid, day), row in self._daily.items()
            if uid == user_id and day >= start and (end is None or day <= end)
        ]
        return sorted(rows, key=lambda r: r.metric_date, reverse=True)

    def get_sessions(
        self,
        user_id: str,
        start: Optional[date] = None,
        limit: Optional[int] = None
    ) -> list[SessionMetric]:
        """Session rows dated on or after start, newest first."""
        rows = [
            row for (uid, _), row in self._sessions.items()
            if uid == user_id and (start is None or row.session_date >= start)
        ]
        return _newest_sessions(rows, limit)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _daily_from_row(row: DailyMetricRow) -> DailyMetric:
    return DailyMetric(**{f.name: getattr(row, f.name) for f in fields(DailyMetric)})


def _session_from_row(row: SessionMetricRow) -> SessionMetric:
    values = {f.name: getattr(row, f.name) for f in fields(SessionMetric)}
    values["session_started_at"] = _as_utc(values["session_started_at"])
    values["session_ended_at"] = _as_utc(values["session_ended_at"])
    return SessionMetric(**values)


class SqlMetricsStore:
    """
    SQLAlchemy-backed store.

    Args:
        session_factory: sessionmaker bound to an engine whose schema
            includes the metric tables (see from_url)
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str, **engine_kwargs) -> "SqlMetricsStore":
        """
        Create a store for a database URL, creating the metric tables if needed.

        Safe to call multiple times - existing tables are left alone.
        """
        engine = create_engine(database_url, **engine_kwargs)
        Base.metadata.create_all(engine)
        return cls(sessionmaker(bind=engine, expire_on_commit=False))

    def _session(self) -> Session:
        return self._session_factory()

    def upsert_daily(self, rows: Iterable[DailyMetric]) -> int:
        now = datetime.now(timezone.utc)
        count = 0
        with self._session() as session:
            for row in rows:
                values = {f.name: getattr(row, f.name) for f in fields(DailyMetric)}
                session.merge(DailyMetricRow(**values, updated_at=now))
                count += 1
            session.commit()
        return count

    def upsert_sessions(self, rows: Iterable[SessionMetric]) -> int:
        now = datetime.now(timezone.utc)
        count = 0
        with self._session() as session:
            for row in rows:
                values = {f.name: getattr(row, f.name) for f in fields(SessionMetric)}
                values["session_started_at"] = _as_utc(values["session_started_at"])
                values["session_ended_at"] = _as_utc(values["session_ended_at"])
                session.merge(SessionMetricRow(**values, updated_at=now))
                count += 1
            session.commit()
        return count

    def get_daily(self, user_id: str, start: date, end: Optional[date] = None) -> list[DailyMetric]:
        """Daily rows in [start, end], newest first."""
        with self._session() as session:
            query = session.query(DailyMetricRow).filter(
                DailyMetricRow.user_id == user_id,
                DailyMetricRow.metric_date >= start,
            )
            if end is not None:
                query = query.filter(DailyMetricRow.metric_date <= end)
            rows = query.order_by(DailyMetricRow.metric_date.desc()).all()
            return [_daily_from_row(row) for row in rows]

    def get_sessions(
        self,
        user_id: str,
        start: Optional[date] = None,
        limit: Optional[int] = None
    ) -> list[SessionMetric]:
        """Session rows dated on or after start, newest first."""
        with self._session() as session:
            query = session.query(SessionMetricRow).filter(SessionMetricRow.user_id == user_id)
            if start is not None:
                query = query.filter(SessionMetricRow.session_date >= start)
            sessions = [_session_from_row(row) for row in query.all()]
        return _newest_sessions(sessions, limit)
