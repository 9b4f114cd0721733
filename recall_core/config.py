"""
Engine configuration from environment variables.

Values come from the process environment, with a local .env file loaded
first when present.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from recall_core.analytics.types import ReliabilityThresholds
from recall_core.errors import ConfigurationError, InvalidInputError
from recall_core.fsrs.constants import (
    DEFAULT_TARGET_RETENTION,
    DEFAULT_WEIGHTS_VERSION,
    FSRS6_DEFAULT_VECTOR,
    SAME_DAY_THRESHOLD_HOURS,
)
from recall_core.fsrs.retention import AdaptiveRetentionConfig
from recall_core.fsrs.scheduling import require_target_retention
from recall_core.fsrs.short_loop import ShortLoopConfig
from recall_core.fsrs.weights import FsrsWeights
from recall_core.health.types import AlertThresholds

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class EngineSettings:
    weights: FsrsWeights
    weights_version: str
    target_retention: float
    same_day_threshold_hours: float
    reliability_thresholds: ReliabilityThresholds
    adaptive_retention_enabled: bool
    adaptive_retention: AdaptiveRetentionConfig
    short_loop: ShortLoopConfig
    alert_thresholds: AlertThresholds
    flag_cache_ttl_seconds: float
    flag_cache_max_entries: int
    log_level: str


def _get(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None or value.strip() == "" else value.strip()


def _get_float(name: str, default: float) -> float:
    raw = _get(name, str(default))
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _get_int(name: str, default: int) -> int:
    raw = _get(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _get_bool(name: str, default: bool) -> bool:
    raw = _get(name, "true" if default else "false").lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _get_weights(version: str) -> FsrsWeights:
    raw = os.getenv("RECALL_WEIGHTS")
    if raw is None or raw.strip() == "":
        values = list(FSRS6_DEFAULT_VECTOR)
    else:
        try:
            values = [float(part) for part in raw.split(",")]
        except ValueError:
            raise ConfigurationError(f"RECALL_WEIGHTS must be comma-separated numbers, got {raw!r}") from None
    return FsrsWeights.from_vector(values, version)


def load_settings(dotenv: bool = True) -> EngineSettings:
    """
    Read engine settings from the environment.

    Args:
        dotenv: Load a .env file first (existing variables win)

    Returns:
        Frozen EngineSettings

    Raises:
        ConfigurationError: A variable is present but invalid
    """
    if dotenv:
        load_dotenv()

    weights_version = _get("RECALL_WEIGHTS_VERSION", DEFAULT_WEIGHTS_VERSION)

    try:
        weights = _get_weights(weights_version)
        target_retention = require_target_retention(
            _get_float("RECALL_TARGET_RETENTION", DEFAULT_TARGET_RETENTION)
        )
        reliability = ReliabilityThresholds(
            medium_min=_get_int("RECALL_RELIABILITY_MEDIUM_MIN", 50),
            high_min=_get_int("RECALL_RELIABILITY_HIGH_MIN", 200),
        )
        adaptive = AdaptiveRetentionConfig(
            minimum=_get_float("RECALL_ADAPTIVE_RETENTION_MIN", 0.85),
            maximum=_get_float("RECALL_ADAPTIVE_RETENTION_MAX", 0.95),
            step=_get_float("RECALL_ADAPTIVE_RETENTION_STEP", 0.01),
        )
        short_loop = ShortLoopConfig(
            enabled=_get_bool("RECALL_SHORT_LOOP_ENABLED", False),
            min_gap_seconds=_get_int("RECALL_SHORT_LOOP_MIN_GAP_SECONDS", 60),
            max_gap_seconds=_get_int("RECALL_SHORT_LOOP_MAX_GAP_SECONDS", 4 * 60 * 60),
            fatigue_threshold=_get_float("RECALL_SHORT_LOOP_FATIGUE_THRESHOLD", 0.72),
            max_reps_light=_get_int("RECALL_SHORT_LOOP_MAX_REPS_LIGHT", 3),
            max_reps_default=_get_int("RECALL_SHORT_LOOP_MAX_REPS_DEFAULT", 5),
            max_reps_intensive=_get_int("RECALL_SHORT_LOOP_MAX_REPS_INTENSIVE", 7),
        )
    except InvalidInputError as e:
        raise ConfigurationError(str(e)) from e

    same_day_hours = _get_float("RECALL_SAME_DAY_THRESHOLD_HOURS", SAME_DAY_THRESHOLD_HOURS)
    if same_day_hours <= 0:
        raise ConfigurationError(f"RECALL_SAME_DAY_THRESHOLD_HOURS must be positive, got {same_day_hours}")

    alert_thresholds = AlertThresholds(
        refresh_failure_rate=_get_float("RECALL_ALERT_REFRESH_FAILURE_RATE", 0.1),
        refresh_min_samples=_get_int("RECALL_ALERT_REFRESH_MIN_SAMPLES", 20),
        study_api_p95_ms=_get_float("RECALL_ALERT_P95_MS", 1500.0),
    )

    ttl = _get_float("RECALL_FLAG_CACHE_TTL_SECONDS", 30.0)
    max_entries = _get_int("RECALL_FLAG_CACHE_MAX_ENTRIES", 5000)
    if ttl <= 0 or max_entries < 1:
        raise ConfigurationError(
            f"Flag cache needs a positive TTL and at least one entry, got ttl={ttl}, max_entries={max_entries}"
        )

    log_level = _get("RECALL_LOG_LEVEL", "INFO").upper()
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError(f"RECALL_LOG_LEVEL must be a logging level name, got {log_level!r}")

    return EngineSettings(
        weights=weights,
        weights_version=weights_version,
        target_retention=target_retention,
        same_day_threshold_hours=same_day_hours,
        reliability_thresholds=reliability,
        adaptive_retention_enabled=_get_bool("RECALL_ADAPTIVE_RETENTION_ENABLED", False),
        adaptive_retention=adaptive,
        short_loop=short_loop,
        alert_thresholds=alert_thresholds,
        flag_cache_ttl_seconds=ttl,
        flag_cache_max_entries=max_entries,
        log_level=log_level,
    )
