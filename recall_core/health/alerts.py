"""
Study-health alerts.

A fixed catalog of rules, each mapping one dashboard metric to a threshold
and a severity. Rules are evaluated in catalog order, so alert ordering is
stable for identical inputs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from recall_core.health.types import (
    AlertReport,
    AlertSeverity,
    AlertThresholds,
    HealthAlert,
    HealthDashboard,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleOutcome:
    value: float
    threshold: float
    triggered: bool


@dataclass(frozen=True)
class AlertRule:
    id: str
    severity: AlertSeverity
    message: str
    evaluate: Callable[[HealthDashboard, AlertThresholds], RuleOutcome]


def _journey_mismatch_rate(dashboard: HealthDashboard, thresholds: AlertThresholds) -> RuleOutcome:
    report = dashboard.consistency
    return RuleOutcome(
        value=report.mismatch_rate,
        threshold=report.thresholds.major,
        triggered=report.mismatch_rate >= report.thresholds.major,
    )


def _refresh_failure_rate(dashboard: HealthDashboard, thresholds: AlertThresholds) -> RuleOutcome:
    auth = dashboard.auth_refresh
    # Suppressed on sparse data
    return RuleOutcome(
        value=auth.failure_rate,
        threshold=thresholds.refresh_failure_rate,
        triggered=(
            auth.total >= thresholds.refresh_min_samples
            and auth.failure_rate >= thresholds.refresh_failure_rate
        ),
    )


def _refresh_reuse_detected(dashboard: HealthDashboard, thresholds: AlertThresholds) -> RuleOutcome:
    reuse = dashboard.auth_refresh.reuse_detected
    return RuleOutcome(value=float(reuse), threshold=0.0, triggered=reuse > 0)


def _study_api_p95_latency(dashboard: HealthDashboard, thresholds: AlertThresholds) -> RuleOutcome:
    p95 = dashboard.latency_overall.p95_ms
    return RuleOutcome(
        value=p95 if p95 is not None else 0.0,
        threshold=thresholds.study_api_p95_ms,
        triggered=p95 is not None and p95 >= thresholds.study_api_p95_ms,
    )


ALERT_RULES: tuple[AlertRule, ...] = (
    AlertRule(
        id="journey_mismatch_rate",
        severity="critical",
        message="Journey mismatch rate above major threshold",
        evaluate=_journey_mismatch_rate,
    ),
    AlertRule(
        id="refresh_failure_rate",
        severity="warning",
        message="Refresh failure rate above baseline threshold",
        evaluate=_refresh_failure_rate,
    ),
    AlertRule(
        id="refresh_reuse_detected",
        severity="critical",
        message="Refresh token reuse/replay detected in window",
        evaluate=_refresh_reuse_detected,
    ),
    AlertRule(
        id="study_api_p95_latency",
        severity="warning",
        message="Study API p95 latency breached threshold",
        evaluate=_study_api_p95_latency,
    ),
)


def highest_severity(alerts: list[HealthAlert]) -> Optional[AlertSeverity]:
    """critical if any critical alert triggered, else warning if any warning did, else None."""
    triggered = [a for a in alerts if a.triggered]
    if any(a.severity == "critical" for a in triggered):
        return "critical"
    if any(a.severity == "warning" for a in triggered):
        return "warning"
    return None


def evaluate_alerts(
    dashboard: HealthDashboard,
    thresholds: AlertThresholds = AlertThresholds(),
    generated_at: Optional[datetime] = None
) -> AlertReport:
    """
    Evaluate every rule in ALERT_RULES against a dashboard snapshot.

    Args:
        dashboard: Latest dashboard snapshot
        thresholds: Alert thresholds
        generated_at: Report timestamp (defaults to the dashboard's)

    Returns:
        AlertReport listing all rules, triggered or not, in catalog order
    """
    alerts: list[HealthAlert] = []
    for rule in ALERT_RULES:
        outcome = rule.evaluate(dashboard, thresholds)
        alert = HealthAlert(
            id=rule.id,
            severity=rule.severity,
            triggered=outcome.triggered,
            message=rule.message,
            value=outcome.value,
            threshold=outcome.threshold,
        )
        if alert.triggered:
            logger.warning(
                "Health alert %s (%s) for user %s: value=%s threshold=%s",
                alert.id, alert.severity, dashboard.user_id, alert.value, alert.threshold
            )
        alerts.append(alert)

    return AlertReport(
        days=dashboard.days,
        generated_at=generated_at or dashboard.generated_at,
        triggered_count=sum(1 for a in alerts if a.triggered),
        highest_severity=highest_severity(alerts),
        alerts=alerts,
    )
