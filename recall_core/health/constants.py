"""
Constants for study-health monitoring.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Final


# Journey consistency
CONSISTENCY_DEFAULT_DAYS: Final[int] = 30
CONSISTENCY_MAX_DAYS: Final[int] = 180
CONSISTENCY_DEFAULT_SAMPLE_LIMIT: Final[int] = 20
CONSISTENCY_MAX_SAMPLE_LIMIT: Final[int] = 50
MISMATCH_MINOR_THRESHOLD: Final[float] = 0.01
MISMATCH_MAJOR_THRESHOLD: Final[float] = 0.05

# An answer reveal this soon after a rating means the client logged them out of order
REVEAL_AFTER_RATING_WINDOW: Final[timedelta] = timedelta(minutes=5)

# Dashboard
DASHBOARD_DEFAULT_DAYS: Final[int] = 7
DASHBOARD_MAX_DAYS: Final[int] = 90
DASHBOARD_SAMPLE_LIMIT: Final[int] = 10
AUTH_FAILURE_STATUS: Final[int] = 400
REUSE_DETECTED_OUTCOME: Final[str] = "reuse_detected"
LATENCY_PERCENTILES: Final[dict[str, float]] = {
    "p50_ms": 0.5,
    "p95_ms": 0.95,
    "p99_ms": 0.99,
}

# Alerts
REFRESH_FAILURE_RATE_THRESHOLD: Final[float] = 0.1
REFRESH_MIN_SAMPLE_SIZE: Final[int] = 20
STUDY_API_P95_MS_THRESHOLD: Final[float] = 1500.0
