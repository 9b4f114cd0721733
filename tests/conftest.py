"""
Shared fixtures for recall-core tests.
"""

from datetime import date, datetime, timedelta, timezone
from itertools import count

import pytest

from recall_core.schemas import (
    JourneyEvent,
    JourneyEventType,
    OperationalEvent,
    OperationalMetricType,
    ReviewOutcome,
)


def pytest_configure(config):
    config.addinivalue_line("markers", "requires_db: test uses an in-memory SQLite database")


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def today(now) -> date:
    return now.date()


@pytest.fixture
def make_review():
    """Factory for ReviewOutcome rows with sequential ids."""
    ids = count(1)

    def _make(
        reviewed_at: datetime,
        rating: int = 3,
        user_id: str = "u1",
        card_id: str = "c1",
        retrievability_before=0.9,
        **extra
    ) -> ReviewOutcome:
        return ReviewOutcome(
            id=extra.pop("id", f"r{next(ids)}"),
            user_id=user_id,
            card_id=card_id,
            rating=rating,
            reviewed_at=reviewed_at,
            retrievability_before=retrievability_before,
            **extra,
        )

    return _make


@pytest.fixture
def make_event():
    """Factory for JourneyEvent rows; idempotency keys default to the event id."""
    ids = count(1)

    def _make(
        event_time: datetime,
        event_type: JourneyEventType = JourneyEventType.RATING_SUBMITTED,
        user_id: str = "u1",
        card_id: str = "c1",
        **extra
    ) -> JourneyEvent:
        event_id = extra.pop("id", f"e{next(ids)}")
        return JourneyEvent(
            id=event_id,
            user_id=user_id,
            card_id=card_id,
            event_type=event_type,
            event_time=event_time,
            idempotency_key=extra.pop("idempotency_key", event_id),
            **extra,
        )

    return _make


@pytest.fixture
def make_operational():
    def _make(
        created_at: datetime,
        metric_type: OperationalMetricType = OperationalMetricType.STUDY_API,
        route: str = "/api/study/sessions",
        status_code: int = 200,
        duration_ms: int = 100,
        user_id: str = "u1",
        outcome=None
    ) -> OperationalEvent:
        return OperationalEvent(
            user_id=user_id,
            metric_type=metric_type,
            route=route,
            status_code=status_code,
            duration_ms=duration_ms,
            created_at=created_at,
            outcome=outcome,
        )

    return _make


@pytest.fixture
def linked_history(now, make_review, make_event):
    """
    Build n reviews, each with one rating event linked by review_log_id.

    Returns (reviews, events).
    """
    def _build(n: int, start_offset: timedelta = timedelta(days=1)):
        reviews, events = [], []
        for i in range(n):
            reviewed_at = now - start_offset - timedelta(minutes=10 * i)
            review = make_review(reviewed_at, card_id=f"c{i}")
            reviews.append(review)
            events.append(make_event(
                reviewed_at + timedelta(seconds=1),
                card_id=f"c{i}",
                review_log_id=review.id,
            ))
        return reviews, events

    return _build
