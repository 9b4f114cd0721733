"""
Journey Consistency - Review Log vs. Journey Log Audit

Checks that every rating written to the review log has exactly one matching
`rating_submitted` journey event, and that journey events arrive in a
plausible order.

Mismatch rate:
    (missing + duplicate + ordering) / review_count

Health level:
    healthy          mismatch_rate <  minor
    minor_drift      minor <= mismatch_rate < major
    needs_attention  mismatch_rate >= major
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable, Optional

from recall_core.fsrs.memory_state import require_aware
from recall_core.health.constants import (
    CONSISTENCY_DEFAULT_DAYS,
    CONSISTENCY_DEFAULT_SAMPLE_LIMIT,
    CONSISTENCY_MAX_DAYS,
    CONSISTENCY_MAX_SAMPLE_LIMIT,
    MISMATCH_MAJOR_THRESHOLD,
    MISMATCH_MINOR_THRESHOLD,
    REVEAL_AFTER_RATING_WINDOW,
)
from recall_core.health.types import (
    ConsistencyReport,
    ConsistencySamples,
    ConsistencyThresholds,
    HealthLevel,
)
from recall_core.schemas import JourneyEvent, JourneyEventType, ReviewOutcome

logger = logging.getLogger(__name__)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def compute_mismatch_rate(review_count: int, missing: int, duplicate: int, ordering: int) -> float:
    """Share of review rows with an inconsistent journey trail; 0 with no reviews."""
    if review_count <= 0:
        return 0.0
    return (missing + duplicate + ordering) / review_count


def classify_health(mismatch_rate: float, thresholds: ConsistencyThresholds) -> HealthLevel:
    if mismatch_rate >= thresholds.major:
        return "needs_attention"
    if mismatch_rate >= thresholds.minor:
        return "minor_drift"
    return "healthy"


def dedupe_journey_events(events: Iterable[JourneyEvent]) -> list[JourneyEvent]:
    """
    Collapse redeliveries: the first event seen for each idempotency key wins.
    """
    seen: set[str] = set()
    unique: list[JourneyEvent] = []
    for event in events:
        if event.idempotency_key in seen:
            continue
        seen.add(event.idempotency_key)
        unique.append(event)
    return unique


def _rating_before_review(
    ratings: list[JourneyEvent],
    reviews_by_id: dict[str, ReviewOutcome]
) -> set[str]:
    flagged = set()
    for event in ratings:
        review = reviews_by_id.get(event.review_log_id) if event.review_log_id else None
        if review is not None and event.event_time < review.reviewed_at:
            flagged.add(event.id)
    return flagged


def _reveal_after_rating(
    ratings: list[JourneyEvent],
    events: list[JourneyEvent]
) -> set[str]:
    reveals = defaultdict(list)
    for event in events:
        if event.event_type == JourneyEventType.ANSWER_REVEALED:
            reveals[(event.card_id, event.session_id)].append(event.event_time)

    flagged = set()
    for event in ratings:
        deadline = event.event_time + REVEAL_AFTER_RATING_WINDOW
        if any(event.event_time < t <= deadline for t in reveals[(event.card_id, event.session_id)]):
            flagged.add(event.id)
    return flagged


def _non_monotonic_sequence(events: list[JourneyEvent]) -> set[str]:
    by_session = defaultdict(list)
    for event in events:
        if event.session_id is not None and event.sequence is not None:
            by_session[event.session_id].append(event)

    flagged = set()
    for session_events in by_session.values():
        session_events.sort(key=lambda e: e.event_time)
        highest: Optional[int] = None
        for event in session_events:
            if highest is not None and event.sequence < highest:
                flagged.add(event.id)
            else:
                highest = event.sequence
    return flagged


def audit_consistency(
    user_id: str,
    review_outcomes: Iterable[ReviewOutcome],
    journey_events: Iterable[JourneyEvent],
    *,
    now: datetime,
    window_days: int = CONSISTENCY_DEFAULT_DAYS,
    sample_limit: int = CONSISTENCY_DEFAULT_SAMPLE_LIMIT,
    minor: float = MISMATCH_MINOR_THRESHOLD,
    major: float = MISMATCH_MAJOR_THRESHOLD
) -> ConsistencyReport:
    """
    Audit the review log against the journey log for one user.

    Args:
        user_id: User to audit
        review_outcomes: Review rows (other users' rows are ignored)
        journey_events: Journey rows (other users' rows are ignored)
        now: Current time (timezone-aware)
        window_days: Look-back window, clamped to [1, 180]
        sample_limit: Cap on each sample id list, clamped to [1, 50]
        minor: Mismatch rate at which drift starts
        major: Mismatch rate that needs attention

    Returns:
        ConsistencyReport; a window without reviews is healthy with rate 0
    """
    require_aware("now", now)
    days = _clamp(window_days, 1, CONSISTENCY_MAX_DAYS)
    sample_limit = _clamp(sample_limit, 1, CONSISTENCY_MAX_SAMPLE_LIMIT)
    thresholds = ConsistencyThresholds(minor=minor, major=major)
    since = now - timedelta(days=days)

    reviews = [
        r for r in review_outcomes
        if r.user_id == user_id and r.reviewed_at >= since
    ]
    events = dedupe_journey_events(
        e for e in journey_events
        if e.user_id == user_id and e.event_time >= since
    )
    ratings = [e for e in events if e.event_type == JourneyEventType.RATING_SUBMITTED]

    linked = defaultdict(int)
    for event in ratings:
        if event.review_log_id is not None:
            linked[event.review_log_id] += 1

    missing = sorted(
        (r for r in reviews if linked[r.id] == 0),
        key=lambda r: r.reviewed_at,
        reverse=True,
    )
    duplicate_ids = sorted(review_id for review_id, count in linked.items() if count > 1)

    reviews_by_id = {r.id: r for r in reviews}
    ordering_ids = (
        _rating_before_review(ratings, reviews_by_id)
        | _reveal_after_rating(ratings, events)
        | _non_monotonic_sequence(events)
    )
    event_times = {e.id: e.event_time for e in events}
    ordering_sample = sorted(ordering_ids, key=lambda i: (event_times[i], i), reverse=True)

    mismatch_rate = compute_mismatch_rate(
        len(reviews), len(missing), len(duplicate_ids), len(ordering_ids)
    )
    health_level = classify_health(mismatch_rate, thresholds)

    if health_level == "needs_attention":
        logger.warning(
            "Journey consistency needs attention for user %s: rate=%.4f "
            "(missing=%d, duplicate=%d, ordering=%d, reviews=%d)",
            user_id, mismatch_rate, len(missing), len(duplicate_ids),
            len(ordering_ids), len(reviews)
        )

    return ConsistencyReport(
        user_id=user_id,
        days=days,
        review_count=len(reviews),
        rating_event_count=len(ratings),
        missing_count=len(missing),
        duplicate_count=len(duplicate_ids),
        ordering_issue_count=len(ordering_ids),
        mismatch_rate=mismatch_rate,
        health_level=health_level,
        thresholds=thresholds,
        samples=ConsistencySamples(
            missing_review_ids=[r.id for r in missing[:sample_limit]],
            duplicate_review_ids=duplicate_ids[:sample_limit],
            ordering_event_ids=ordering_sample[:sample_limit],
        ),
    )
