"""
Health package exports.
"""

from recall_core.health.alerts import ALERT_RULES, evaluate_alerts
from recall_core.health.consistency import audit_consistency
from recall_core.health.dashboard import build_dashboard
from recall_core.health.types import (
    AlertReport,
    AlertThresholds,
    ConsistencyReport,
    HealthAlert,
    HealthDashboard,
)

__all__ = [
    "ALERT_RULES",
    "evaluate_alerts",
    "audit_consistency",
    "build_dashboard",
    "AlertReport",
    "AlertThresholds",
    "ConsistencyReport",
    "HealthAlert",
    "HealthDashboard",
]
