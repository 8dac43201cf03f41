"""
Tests for AppConfig environment loading, validation and logging setup.
"""

from __future__ import annotations

import logging

import pytest

from app.config import AppConfig, load_config, setup_logging
from app.domain.exceptions import ConfigurationError


class TestAppConfig:
    def test_defaults(self, monkeypatch):
        for name in ("IOTHUB_RATE_LIMIT_MAX_MESSAGES", "IOTHUB_QUARANTINE_DURATION_SECONDS", "IOTHUB_ENABLE_SLACK"):
            monkeypatch.delenv(name, raising=False)
        config = AppConfig()
        assert config.rate_limit_max_messages == 10
        assert config.rate_limit_window_seconds == 60.0
        assert config.quarantine_duration_seconds == 300.0
        assert config.anomaly_threshold == 3
        assert config.enable_slack is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("IOTHUB_RATE_LIMIT_MAX_MESSAGES", "25")
        monkeypatch.setenv("IOTHUB_RATE_LIMIT_POLICY", "fixed")
        monkeypatch.setenv("IOTHUB_ENABLE_TELEGRAM", "yes")
        monkeypatch.setenv("IOTHUB_MQTT_USERNAME", "")
        config = load_config()
        assert config.rate_limit_max_messages == 25
        assert config.rate_limit_policy == "fixed"
        assert config.enable_telegram is True
        assert config.mqtt_username is None

    def test_non_numeric_env_value(self, monkeypatch):
        monkeypatch.setenv("IOTHUB_MQTT_PORT", "eighteen")
        with pytest.raises(ValueError, match="IOTHUB_MQTT_PORT"):
            AppConfig()

    @pytest.mark.parametrize(
        "overrides, fragment",
        [
            ({"rate_limit_policy": "leaky"}, "policy"),
            ({"rate_limit_max_messages": 0}, "rate_limit_max_messages"),
            ({"quarantine_duration_seconds": 0}, "quarantine_duration_seconds"),
            ({"anomaly_threshold": 0}, "anomaly_threshold"),
            ({"mqtt_broker_port": 70000}, "port"),
        ],
    )
    def test_validate_rejects(self, make_config, overrides, fragment):
        with pytest.raises(ConfigurationError, match=fragment):
            make_config(**overrides).validate()

    def test_security_summary(self, make_config):
        summary = make_config(rate_limit_max_messages=5, rate_limit_window_seconds=30).security_summary()
        assert summary["rate_limit"] == "5/30s"


class TestSetupLogging:
    def test_adds_named_handlers_once(self, tmp_path):
        root = logging.getLogger()
        before = list(root.handlers)
        level = root.level
        try:
            setup_logging("DEBUG", str(tmp_path))
            setup_logging("DEBUG", str(tmp_path))
            names = [h.name for h in root.handlers if h.name in {"iothub_console", "iothub_file"}]
            assert sorted(names) == ["iothub_console", "iothub_file"]
            assert (tmp_path / "iot_security_hub.log").exists()
            assert logging.getLogger("urllib3").level == logging.WARNING
        finally:
            for handler in list(root.handlers):
                if handler not in before:
                    handler.close()
                    root.removeHandler(handler)
            root.setLevel(level)
