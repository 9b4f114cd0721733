"""
Types for study-health monitoring.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, Optional

from recall_core.errors import InvalidInputError
from recall_core.health.constants import (
    MISMATCH_MAJOR_THRESHOLD,
    MISMATCH_MINOR_THRESHOLD,
    REFRESH_FAILURE_RATE_THRESHOLD,
    REFRESH_MIN_SAMPLE_SIZE,
    STUDY_API_P95_MS_THRESHOLD,
)


HealthLevel = Literal["healthy", "minor_drift", "needs_attention"]
AlertSeverity = Literal["warning", "critical"]


# ---- Journey consistency ----

@dataclass(frozen=True)
class ConsistencyThresholds:
    minor: float = MISMATCH_MINOR_THRESHOLD
    major: float = MISMATCH_MAJOR_THRESHOLD

    def __post_init__(self):
        if not 0.0 <= self.minor <= self.major:
            raise InvalidInputError(
                f"Consistency thresholds must satisfy 0 <= minor <= major, got {self.minor}, {self.major}"
            )


@dataclass(frozen=True)
class ConsistencySamples:
    """Offending ids for debugging, each list capped at the sample limit."""
    missing_review_ids: list[str] = field(default_factory=list)
    duplicate_review_ids: list[str] = field(default_factory=list)
    ordering_event_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConsistencyReport:
    user_id: str
    days: int
    review_count: int
    rating_event_count: int
    missing_count: int
    duplicate_count: int
    ordering_issue_count: int
    mismatch_rate: float
    health_level: HealthLevel
    thresholds: ConsistencyThresholds
    samples: ConsistencySamples


# ---- Dashboard ----

@dataclass(frozen=True)
class AuthRefreshStats:
    total: int = 0
    failures: int = 0
    failure_rate: float = 0.0
    reuse_detected: int = 0


@dataclass(frozen=True)
class LatencyStats:
    sample_count: int = 0
    p50_ms: Optional[float] = None
    p95_ms: Optional[float] = None
    p99_ms: Optional[float] = None


@dataclass(frozen=True)
class RouteLatency:
    route: str
    stats: LatencyStats


@dataclass(frozen=True)
class DailyThroughput:
    day: date
    review_count: int


@dataclass(frozen=True)
class HealthDashboard:
    user_id: str
    days: int
    generated_at: datetime
    auth_refresh: AuthRefreshStats
    consistency: ConsistencyReport
    latency_overall: LatencyStats
    latency_by_route: list[RouteLatency] = field(default_factory=list)
    throughput_by_day: list[DailyThroughput] = field(default_factory=list)


# ---- Alerts ----

@dataclass(frozen=True)
class AlertThresholds:
    refresh_failure_rate: float = REFRESH_FAILURE_RATE_THRESHOLD
    refresh_min_samples: int = REFRESH_MIN_SAMPLE_SIZE
    study_api_p95_ms: float = STUDY_API_P95_MS_THRESHOLD


@dataclass(frozen=True)
class HealthAlert:
    id: str
    severity: AlertSeverity
    triggered: bool
    message: str
    value: float
    threshold: float


@dataclass(frozen=True)
class AlertReport:
    days: int
    generated_at: datetime
    triggered_count: int
    highest_severity: Optional[AlertSeverity]
    alerts: list[HealthAlert] = field(default_factory=list)
