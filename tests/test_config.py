"""
Tests for environment configuration and logging setup.
"""

import logging

import pytest

from recall_core.config import load_settings
from recall_core.errors import ConfigurationError
from recall_core.fsrs.constants import FSRS6_DEFAULT_VECTOR
from recall_core.logging_setup import setup_logging


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "RECALL_WEIGHTS",
        "RECALL_WEIGHTS_VERSION",
        "RECALL_TARGET_RETENTION",
        "RECALL_SAME_DAY_THRESHOLD_HOURS",
        "RECALL_RELIABILITY_MEDIUM_MIN",
        "RECALL_RELIABILITY_HIGH_MIN",
        "RECALL_ADAPTIVE_RETENTION_ENABLED",
        "RECALL_ADAPTIVE_RETENTION_MIN",
        "RECALL_ADAPTIVE_RETENTION_MAX",
        "RECALL_ADAPTIVE_RETENTION_STEP",
        "RECALL_SHORT_LOOP_ENABLED",
        "RECALL_SHORT_LOOP_MIN_GAP_SECONDS",
        "RECALL_SHORT_LOOP_MAX_GAP_SECONDS",
        "RECALL_SHORT_LOOP_FATIGUE_THRESHOLD",
        "RECALL_SHORT_LOOP_MAX_REPS_LIGHT",
        "RECALL_SHORT_LOOP_MAX_REPS_DEFAULT",
        "RECALL_SHORT_LOOP_MAX_REPS_INTENSIVE",
        "RECALL_ALERT_REFRESH_FAILURE_RATE",
        "RECALL_ALERT_REFRESH_MIN_SAMPLES",
        "RECALL_ALERT_P95_MS",
        "RECALL_FLAG_CACHE_TTL_SECONDS",
        "RECALL_FLAG_CACHE_MAX_ENTRIES",
        "RECALL_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings(dotenv=False)

        assert settings.weights.to_vector() == list(FSRS6_DEFAULT_VECTOR)
        assert settings.target_retention == 0.9
        assert settings.same_day_threshold_hours == 24.0
        assert settings.reliability_thresholds.medium_min == 50
        assert settings.reliability_thresholds.high_min == 200
        assert settings.adaptive_retention_enabled is False
        assert settings.alert_thresholds.study_api_p95_ms == 1500.0
        assert settings.short_loop.enabled is False
        assert settings.short_loop.min_gap_seconds == 60
        assert settings.short_loop.max_gap_seconds == 14400
        assert settings.short_loop.max_reps("light") == 3
        assert settings.flag_cache_ttl_seconds == 30.0
        assert settings.flag_cache_max_entries == 5000
        assert settings.log_level == "INFO"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("RECALL_TARGET_RETENTION", "0.85")
        monkeypatch.setenv("RECALL_ADAPTIVE_RETENTION_ENABLED", "yes")
        monkeypatch.setenv("RECALL_RELIABILITY_HIGH_MIN", "300")
        monkeypatch.setenv("RECALL_LOG_LEVEL", "debug")
        monkeypatch.setenv("RECALL_SHORT_LOOP_ENABLED", "true")
        monkeypatch.setenv("RECALL_SHORT_LOOP_MAX_REPS_INTENSIVE", "9")

        settings = load_settings(dotenv=False)

        assert settings.target_retention == 0.85
        assert settings.adaptive_retention_enabled is True
        assert settings.reliability_thresholds.high_min == 300
        assert settings.log_level == "DEBUG"
        assert settings.short_loop.enabled is True
        assert settings.short_loop.max_reps("intensive") == 9

    def test_custom_weights(self, monkeypatch):
        values = list(FSRS6_DEFAULT_VECTOR)
        values[2] = 3.0
        monkeypatch.setenv("RECALL_WEIGHTS", ",".join(str(v) for v in values))

        assert load_settings(dotenv=False).weights.initial_stability_good == 3.0

    @pytest.mark.parametrize("name, value", [
        ("RECALL_WEIGHTS", "1,2,3"),
        ("RECALL_WEIGHTS", "a,b"),
        ("RECALL_WEIGHTS_VERSION", "fsrs-99"),
        ("RECALL_TARGET_RETENTION", "1.0"),
        ("RECALL_TARGET_RETENTION", "high"),
        ("RECALL_RELIABILITY_MEDIUM_MIN", "500"),
        ("RECALL_ADAPTIVE_RETENTION_ENABLED", "maybe"),
        ("RECALL_ADAPTIVE_RETENTION_STEP", "0.5"),
        ("RECALL_SAME_DAY_THRESHOLD_HOURS", "0"),
        ("RECALL_FLAG_CACHE_MAX_ENTRIES", "0"),
        ("RECALL_SHORT_LOOP_MIN_GAP_SECONDS", "10"),
        ("RECALL_SHORT_LOOP_MAX_GAP_SECONDS", "60"),
        ("RECALL_SHORT_LOOP_FATIGUE_THRESHOLD", "1.5"),
        ("RECALL_SHORT_LOOP_MAX_REPS_DEFAULT", "0"),
        ("RECALL_SHORT_LOOP_ENABLED", "sometimes"),
        ("RECALL_LOG_LEVEL", "LOUD"),
    ])
    def test_invalid_values_raise(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigurationError):
            load_settings(dotenv=False)


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def restore_logger(self):
        logger = logging.getLogger("recall_core")
        yield
        logger.handlers.clear()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    def test_configures_package_logger(self):
        logger = setup_logging("warning")

        assert logger.name == "recall_core"
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1

    def test_repeated_calls_do_not_stack_handlers(self):
        setup_logging("INFO")
        logger = setup_logging("DEBUG")
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG

    def test_level_from_settings(self, monkeypatch):
        monkeypatch.setenv("RECALL_LOG_LEVEL", "ERROR")
        assert setup_logging().level == logging.ERROR

    def test_unknown_level_raises(self):
        with pytest.raises(ConfigurationError):
            setup_logging("LOUD")
