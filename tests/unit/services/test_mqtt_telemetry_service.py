"""
Tests for MQTTTelemetryService routing and error accounting.
"""

from __future__ import annotations

import threading
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from app.domain.exceptions import (
    DecodeError,
    QuarantinedDeviceRejected,
    RateLimitExceeded,
    StoreError,
    ValidationError,
)
from app.services.mqtt_telemetry_service import MQTTTelemetryService


def _msg(payload: bytes = b"{}", topic: str = "devices/d1/telemetry"):
    return SimpleNamespace(topic=topic, payload=payload)


@pytest.fixture()
def mqtt_client():
    client = MagicMock()
    client.subscribe.return_value = True
    return client


def _service(mqtt_client, handler, **kwargs):
    service = MQTTTelemetryService(mqtt_client, handler, **kwargs)
    assert service.start()
    return service


class TestMQTTTelemetryService:
    def test_start_subscribes_to_topic(self, mqtt_client):
        service = MQTTTelemetryService(mqtt_client, MagicMock(), "sensors/#")
        assert service.start()
        mqtt_client.subscribe.assert_called_once_with("sensors/#", service._on_message)
        service.shutdown()

    def test_start_fails_when_subscribe_fails(self, mqtt_client):
        mqtt_client.subscribe.return_value = False
        service = MQTTTelemetryService(mqtt_client, MagicMock())
        assert service.start() is False
        service.shutdown()

    def test_messages_reach_handler(self, mqtt_client):
        handler = MagicMock()
        service = _service(mqtt_client, handler)
        service._on_message(None, None, _msg(b'{"device_id":"d1"}'))
        service.shutdown()

        handler.handle.assert_called_once_with("devices/d1/telemetry", b'{"device_id":"d1"}')
        assert service.stats == {"received": 1, "accepted": 1}

    @pytest.mark.parametrize(
        "error, key",
        [
            (DecodeError("bad json"), "decode_errors"),
            (RateLimitExceeded("d1", 10, 10, 60), "rate_limited"),
            (ValidationError("bad", device_id="d1"), "invalid"),
            (QuarantinedDeviceRejected("d1"), "quarantined"),
            (StoreError("disk"), "errors"),
            (RuntimeError("bug"), "errors"),
        ],
    )
    def test_failures_are_counted_not_raised(self, mqtt_client, error, key):
        handler = MagicMock()
        handler.handle.side_effect = error
        service = _service(mqtt_client, handler)
        service._on_message(None, None, _msg())
        service.shutdown()
        assert service.stats[key] == 1
        assert "accepted" not in service.stats

    def test_backlog_limit_drops_messages(self, mqtt_client):
        release = threading.Event()
        handler = MagicMock()
        handler.handle.side_effect = lambda *_: release.wait(5)
        service = _service(mqtt_client, handler, max_workers=1, max_pending=1)
        try:
            service._on_message(None, None, _msg())
            service._on_message(None, None, _msg())
        finally:
            release.set()
            service.shutdown()
        assert service.stats["dropped"] == 1
        assert service.stats["accepted"] == 1

    def test_messages_after_shutdown_are_dropped(self, mqtt_client):
        handler = MagicMock()
        service = _service(mqtt_client, handler)
        service.shutdown()
        service._on_message(None, None, _msg())
        handler.handle.assert_not_called()
        assert service.stats["dropped"] == 1
