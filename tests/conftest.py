"""
Shared test fixtures for the IoT security hub test suite.

Provides:
- A controllable clock shared by every time-dependent component
- An ``AppConfig`` built from explicit values (no environment leakage)
- A recording notifier that captures alerts synchronously
- A fully wired ``ServiceContainer``
- A JSON payload factory stamped with the fake clock

Usage:
    def test_example(container, make_payload):
        container.pipeline.process(make_payload("d1", temperature=22.5))
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.config import AppConfig  # noqa: E402
from app.services.container import ServiceContainer  # noqa: E402

# ---------------------------------------------------------------------------
# Logging: keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("infrastructure").setLevel(logging.WARNING)
logging.getLogger("app").setLevel(logging.WARNING)

START_TIME = 1_700_000_000.0


class FakeClock:
    """Callable returning POSIX seconds; only moves when told to."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class RecordingNotifier:
    """NotificationService that keeps every alert in memory."""

    name = "recording"

    def __init__(self) -> None:
        self.anomalies = []
        self.quarantines = []

    def send_anomaly_alert(self, anomaly) -> None:
        self.anomalies.append(anomaly)

    def send_quarantine_alert(self, device_id: str, reason: str) -> None:
        self.quarantines.append((device_id, reason))


def build_config(**overrides: Any) -> AppConfig:
    values = dict(
        environment="testing",
        log_level="WARNING",
        log_dir=None,
        audit_log_path=None,
        rate_limit_policy="sliding",
        rate_limit_max_messages=10,
        rate_limit_window_seconds=60.0,
        quarantine_duration_seconds=300.0,
        anomaly_threshold=3,
        timestamp_skew_seconds=3600,
        enable_slack=False,
        slack_webhook_url=None,
        enable_telegram=False,
        telegram_bot_token=None,
        telegram_chat_id=None,
    )
    values.update(overrides)
    return AppConfig(**values)


# ============================== Fixtures ====================================


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def config() -> AppConfig:
    return build_config()


@pytest.fixture()
def recording_notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def container(config, recording_notifier, clock):
    """Fresh container per test; nothing is shared between tests."""
    c = ServiceContainer.build(config, recording_notifier, clock=clock, synchronous_alerts=True)
    yield c
    c.shutdown()


@pytest.fixture()
def make_payload(clock):
    """Factory producing a JSON telemetry payload timestamped with the fake clock."""

    def _make(device_id: str = "d1", **fields: Any) -> bytes:
        body = {"device_id": device_id, "timestamp": int(clock())}
        body.update(fields)
        return json.dumps(body).encode("utf-8")

    return _make


@pytest.fixture()
def make_config():
    """Factory for ``AppConfig`` with test defaults plus overrides."""
    return build_config


@pytest.fixture()
def notifier_factory():
    """Factory for additional recording notifiers."""
    return RecordingNotifier
