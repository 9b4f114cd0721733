"""
Types for calibration metrics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, Optional

from recall_core.errors import InvalidInputError


Reliability = Literal["low", "medium", "high"]


@dataclass(frozen=True)
class ReliabilityThresholds:
    """
    Review-count bands for a variable-length period.

    count < medium_min -> low, count < high_min -> medium, else high.
    """
    medium_min: int = 50
    high_min: int = 200

    def __post_init__(self):
        if self.medium_min < 0 or self.high_min < self.medium_min:
            raise InvalidInputError(
                f"Invalid reliability thresholds: medium_min={self.medium_min}, high_min={self.high_min}"
            )

    def classify(self, sample_size: int) -> Reliability:
        if sample_size < self.medium_min:
            return "low"
        if sample_size < self.high_min:
            return "medium"
        return "high"


@dataclass(frozen=True)
class DayBoundary:
    """
    Calendar-day semantics supplied by the clock collaborator.

    A review at 02:00 local time with day_start_hour=4 belongs to the
    previous day.
    """
    timezone: str = "UTC"
    day_start_hour: int = 0

    def __post_init__(self):
        if not 0 <= self.day_start_hour < 24:
            raise InvalidInputError(f"day_start_hour must be 0-23, got {self.day_start_hour}")


@dataclass(frozen=True)
class DailyMetric:
    """Per (user, day) calibration aggregate. Always rebuildable from review rows."""
    user_id: str
    metric_date: date
    review_count: int
    pass_count: int
    fail_count: int
    scored_count: int  # reviews carrying a predicted recall
    avg_predicted_recall: Optional[float]
    observed_recall_rate: Optional[float]
    brier_score: Optional[float]
    mean_review_duration_ms: Optional[float]
    p50_review_duration_ms: Optional[int]
    p90_review_duration_ms: Optional[int]
    avg_elapsed_days: Optional[float]
    avg_scheduled_days: Optional[float]
    session_count: int


@dataclass(frozen=True)
class SessionMetric:
    """Per (user, session) calibration aggregate."""
    user_id: str
    session_id: str
    session_date: date
    session_started_at: Optional[datetime]
    session_ended_at: Optional[datetime]
    review_count: int
    pass_count: int
    fail_count: int
    avg_predicted_recall: Optional[float]
    observed_recall_rate: Optional[float]
    brier_score: Optional[float]
    mean_review_duration_ms: Optional[float]
    fatigue_slope: Optional[float]


@dataclass(frozen=True)
class PeriodStats:
    review_count: int = 0
    pass_count: int = 0
    fail_count: int = 0
    observed_recall_rate: Optional[float] = None
    avg_predicted_recall: Optional[float] = None
    avg_brier_score: Optional[float] = None
    reliability: Reliability = "low"


@dataclass(frozen=True)
class SummaryDeltas:
    """Current minus previous, per field. None when either side is None."""
    review_count: int = 0
    pass_count: int = 0
    fail_count: int = 0
    observed_recall_rate: Optional[float] = None
    avg_predicted_recall: Optional[float] = None
    avg_brier_score: Optional[float] = None


@dataclass(frozen=True)
class MetricsSummary:
    days: int
    current: PeriodStats
    previous: PeriodStats
    deltas: SummaryDeltas


@dataclass(frozen=True)
class ReviewWindowMetric:
    window_size: int
    review_count: int
    pass_count: int
    fail_count: int
    observed_recall_rate: Optional[float]
    avg_predicted_recall: Optional[float]
    brier_score: Optional[float]
    reliability: Reliability


@dataclass(frozen=True)
class SessionWindowMetric:
    session_count: int = 0
    review_count: int = 0
    observed_recall_rate: Optional[float] = None
    avg_brier_score: Optional[float] = None
    avg_fatigue_slope: Optional[float] = None


@dataclass(frozen=True)
class MetricsWindows:
    review_windows: list[ReviewWindowMetric] = field(default_factory=list)
    session_window: SessionWindowMetric = field(default_factory=SessionWindowMetric)


@dataclass(frozen=True)
class LearningVsGraduatedCounts:
    """Learning-phase (New/Learning/Relearning/unset) vs graduated (Review) counts."""
    learning_review_count: int = 0
    graduated_review_count: int = 0


@dataclass(frozen=True)
class StudyStatsByCategory:
    category_id: str
    summary: MetricsSummary
    daily: list[DailyMetric]
    learning_vs_graduated: LearningVsGraduatedCounts
