"""
Tests for ServiceContainer wiring.
"""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

from app.enums.anomaly import AnomalyType
from app.notifications import NotificationBroadcaster
from app.security.rate_limiter import FixedWindowRateLimiter, SlidingWindowRateLimiter
from app.services.container import ServiceContainer
from app.services.protocols import AnomalyStore, DeviceStore


class TestServiceContainer:
    def test_components_follow_config(self, make_config, recording_notifier):
        config = make_config(
            rate_limit_policy="fixed",
            rate_limit_max_messages=20,
            quarantine_duration_seconds=120,
            anomaly_threshold=5,
        )
        container = ServiceContainer.build(config, recording_notifier, synchronous_alerts=True)

        assert isinstance(container.rate_limiter, FixedWindowRateLimiter)
        assert container.rate_limiter.max_messages == 20
        assert container.quarantine.duration_seconds == 120
        assert container.behavior_analyzer.anomaly_threshold == 5
        assert container.pipeline.notifier is recording_notifier
        assert container.handler.pipeline is container.pipeline
        assert isinstance(container.device_store, DeviceStore)
        assert isinstance(container.anomaly_store, AnomalyStore)

    def test_default_notifier_is_broadcaster(self, config):
        container = ServiceContainer.build(config)
        try:
            assert isinstance(container.notifier, NotificationBroadcaster)
            assert isinstance(container.rate_limiter, SlidingWindowRateLimiter)
        finally:
            container.shutdown()

    def test_shutdown_closes_notifier(self, config):
        notifier = MagicMock()
        ServiceContainer.build(config, notifier, synchronous_alerts=True).shutdown()
        notifier.close.assert_called_once_with()

    def test_shutdown_tolerates_close_failure(self, config):
        notifier = MagicMock()
        notifier.close.side_effect = RuntimeError("stuck")
        ServiceContainer.build(config, notifier, synchronous_alerts=True).shutdown()

    def test_plain_notifier_is_dispatched_off_the_ingest_thread(self, config, clock, make_payload):
        release = threading.Event()
        delivered = []

        class SlowBackend:
            name = "slow"

            def send_anomaly_alert(self, anomaly):
                release.wait(5)
                delivered.append(anomaly.anomaly_type)

            def send_quarantine_alert(self, device_id, reason):
                pass

        container = ServiceContainer.build(config, SlowBackend(), clock=clock)
        try:
            assert isinstance(container.notifier, NotificationBroadcaster)
            container.pipeline.process(make_payload("d1", temperature=85))
            assert delivered == []
            release.set()
            assert container.notifier.flush(timeout=5)
        finally:
            release.set()
            container.shutdown()
        assert delivered == [AnomalyType.TEMPERATURE]

    def test_broadcaster_is_used_as_is(self, config):
        broadcaster = NotificationBroadcaster()
        container = ServiceContainer.build(config, broadcaster)
        try:
            assert container.notifier is broadcaster
        finally:
            container.shutdown()
