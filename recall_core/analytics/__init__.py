"""
Analytics package exports.
"""

from recall_core.analytics.constants import DEFAULT_DAYS, REVIEW_WINDOWS
from recall_core.analytics.metrics import brier_score, fatigue_slope
from recall_core.analytics.service import MetricsAggregator, normalize_days
from recall_core.analytics.store import InMemoryMetricsStore, SqlMetricsStore
from recall_core.analytics.types import (
    DailyMetric,
    DayBoundary,
    LearningVsGraduatedCounts,
    MetricsSummary,
    MetricsWindows,
    PeriodStats,
    ReliabilityThresholds,
    ReviewWindowMetric,
    SessionMetric,
    SessionWindowMetric,
    StudyStatsByCategory,
    SummaryDeltas,
)

__all__ = [
    "DEFAULT_DAYS",
    "REVIEW_WINDOWS",
    "brier_score",
    "fatigue_slope",
    "MetricsAggregator",
    "normalize_days",
    "InMemoryMetricsStore",
    "SqlMetricsStore",
    "DailyMetric",
    "DayBoundary",
    "LearningVsGraduatedCounts",
    "MetricsSummary",
    "MetricsWindows",
    "PeriodStats",
    "ReliabilityThresholds",
    "ReviewWindowMetric",
    "SessionMetric",
    "SessionWindowMetric",
    "StudyStatsByCategory",
    "SummaryDeltas",
]
