"""
Configuration for the IoT Security Hub
======================================
Runtime settings for the MQTT transport, admission control, quarantine
policy and notification backends, all read from ``IOTHUB_*`` environment
variables. Sets up the logging configuration as well.
"""

import os
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any

from app.domain.exceptions import ConfigurationError
from app.enums.anomaly import RateLimitPolicy


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer.") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number.") from None


def _env_str(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("IOTHUB_ENV", "development"))
    log_level: str = field(default_factory=lambda: os.getenv("IOTHUB_LOG_LEVEL", "INFO"))
    log_dir: str = field(default_factory=lambda: os.getenv("IOTHUB_LOG_DIR", "logs"))
    audit_log_path: str | None = field(default_factory=lambda: _env_str("IOTHUB_AUDIT_LOG_PATH", "logs/security.log"))

    # MQTT transport
    mqtt_broker_host: str = field(default_factory=lambda: os.getenv("IOTHUB_MQTT_HOST", "localhost"))
    mqtt_broker_port: int = field(default_factory=lambda: _env_int("IOTHUB_MQTT_PORT", 1883))
    mqtt_topic: str = field(default_factory=lambda: os.getenv("IOTHUB_MQTT_TOPIC", "devices/+/telemetry"))
    mqtt_username: str | None = field(default_factory=lambda: _env_str("IOTHUB_MQTT_USERNAME"))
    mqtt_password: str | None = field(default_factory=lambda: _env_str("IOTHUB_MQTT_PASSWORD"))
    mqtt_client_id: str = field(default_factory=lambda: os.getenv("IOTHUB_MQTT_CLIENT_ID", "iot_security_hub"))
    mqtt_keepalive: int = field(default_factory=lambda: _env_int("IOTHUB_MQTT_KEEPALIVE", 60))
    mqtt_reconnect_max_delay: int = field(default_factory=lambda: _env_int("IOTHUB_MQTT_RECONNECT_MAX_DELAY", 10))

    # Admission control and quarantine
    rate_limit_policy: str = field(default_factory=lambda: os.getenv("IOTHUB_RATE_LIMIT_POLICY", "sliding"))
    rate_limit_max_messages: int = field(default_factory=lambda: _env_int("IOTHUB_RATE_LIMIT_MAX_MESSAGES", 10))
    rate_limit_window_seconds: float = field(
        default_factory=lambda: _env_float("IOTHUB_RATE_LIMIT_WINDOW_SECONDS", 60.0)
    )
    quarantine_duration_seconds: float = field(
        default_factory=lambda: _env_float("IOTHUB_QUARANTINE_DURATION_SECONDS", 300.0)
    )
    anomaly_threshold: int = field(default_factory=lambda: _env_int("IOTHUB_ANOMALY_THRESHOLD", 3))
    timestamp_skew_seconds: int = field(default_factory=lambda: _env_int("IOTHUB_TIMESTAMP_SKEW_SECONDS", 3600))

    # Maintenance
    quarantine_sweep_interval_seconds: float = field(
        default_factory=lambda: _env_float("IOTHUB_QUARANTINE_SWEEP_INTERVAL", 60.0)
    )
    rate_limit_cleanup_interval_seconds: float = field(
        default_factory=lambda: _env_float("IOTHUB_RATE_LIMIT_CLEANUP_INTERVAL", 60.0)
    )

    # Worker pools
    ingest_worker_count: int = field(default_factory=lambda: _env_int("IOTHUB_INGEST_WORKER_COUNT", 4))
    notification_worker_count: int = field(default_factory=lambda: _env_int("IOTHUB_NOTIFICATION_WORKER_COUNT", 4))

    # Notifications
    enable_slack: bool = field(default_factory=lambda: _env_bool("IOTHUB_ENABLE_SLACK", False))
    slack_webhook_url: str | None = field(default_factory=lambda: _env_str("IOTHUB_SLACK_WEBHOOK_URL"))
    enable_telegram: bool = field(default_factory=lambda: _env_bool("IOTHUB_ENABLE_TELEGRAM", False))
    telegram_bot_token: str | None = field(default_factory=lambda: _env_str("IOTHUB_TELEGRAM_BOT_TOKEN"))
    telegram_chat_id: str | None = field(default_factory=lambda: _env_str("IOTHUB_TELEGRAM_CHAT_ID"))
    notification_timeout_seconds: float = field(
        default_factory=lambda: _env_float("IOTHUB_NOTIFICATION_TIMEOUT_SECONDS", 10.0)
    )

    def validate(self) -> None:
        """Raise ``ConfigurationError`` for values the hub cannot run with."""
        problems = []
        try:
            RateLimitPolicy(self.rate_limit_policy)
        except ValueError:
            problems.append(f"unknown rate limit policy: {self.rate_limit_policy!r}")
        if self.rate_limit_max_messages < 1:
            problems.append("rate_limit_max_messages must be >= 1")
        if self.rate_limit_window_seconds <= 0:
            problems.append("rate_limit_window_seconds must be > 0")
        if self.quarantine_duration_seconds <= 0:
            problems.append("quarantine_duration_seconds must be > 0")
        if self.anomaly_threshold < 1:
            problems.append("anomaly_threshold must be >= 1")
        if self.timestamp_skew_seconds < 0:
            problems.append("timestamp_skew_seconds must be >= 0")
        if not 0 < self.mqtt_broker_port < 65536:
            problems.append(f"invalid MQTT port: {self.mqtt_broker_port}")
        if self.ingest_worker_count < 1 or self.notification_worker_count < 1:
            problems.append("worker counts must be >= 1")
        if problems:
            raise ConfigurationError("Invalid configuration: " + "; ".join(problems), detail={"errors": problems})

    def security_summary(self) -> dict[str, Any]:
        """Effective admission and quarantine settings, for the startup log."""
        return {
            "rate_limit_policy": self.rate_limit_policy,
            "rate_limit": f"{self.rate_limit_max_messages}/{self.rate_limit_window_seconds:g}s",
            "quarantine_duration_seconds": self.quarantine_duration_seconds,
            "anomaly_threshold": self.anomaly_threshold,
        }


def setup_logging(level: str = "INFO", log_dir: str | None = "logs") -> None:
    """Setup logging configuration.

    Adds a console handler and, when *log_dir* is set, a rotating file
    handler. Safe to call repeatedly: named handlers are reused.
    """
    import logging
    import sys
    from logging.handlers import RotatingFileHandler

    log_level = getattr(logging, str(level).upper(), logging.INFO)

    # Root logger
    root = logging.getLogger()
    root.setLevel(log_level)

    has_console = any(getattr(h, "name", "") == "iothub_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "iothub_file" for h in root.handlers)
    added_handler = False

    # Console handler (force UTF-8 so alert emojis never raise UnicodeEncodeError)
    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "iothub_console"
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
        added_handler = True

    # File handler
    if log_dir and not has_file:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "iot_security_hub.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.name = "iothub_file"
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        added_handler = True

    # Ensure handler levels follow the desired log level
    for handler in root.handlers:
        if getattr(handler, "name", "") in {"iothub_console", "iothub_file"}:
            handler.setLevel(log_level)

    if added_handler:
        root.info("Logging initialized at level: %s", logging.getLevelName(log_level))

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("paho").setLevel(logging.WARNING)


def load_config() -> AppConfig:
    """Helper for callers to load and validate configuration."""
    config = AppConfig()
    config.validate()
    return config
