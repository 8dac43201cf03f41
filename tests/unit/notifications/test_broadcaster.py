"""
Tests for NotificationBroadcaster fan-out and build_notifiers wiring.
"""

from __future__ import annotations

import threading

from app.domain.anomaly import Anomaly
from app.domain.exceptions import NotificationError
from app.enums.anomaly import AnomalyType
from app.notifications import NotificationBroadcaster, SlackNotifier, TelegramNotifier, build_notifiers
from app.services.protocols import NotificationService


class FailingNotifier:
    name = "failing"

    def send_anomaly_alert(self, anomaly):
        raise NotificationError("backend down")

    def send_quarantine_alert(self, device_id, reason):
        raise NotificationError("backend down")


class SlowNotifier:
    name = "slow"

    def __init__(self, release: threading.Event):
        self.release = release
        self.quarantines = []

    def send_anomaly_alert(self, anomaly):
        pass

    def send_quarantine_alert(self, device_id, reason):
        self.release.wait(5)
        self.quarantines.append((device_id, reason))


def _anomaly() -> Anomaly:
    return Anomaly("d1", AnomalyType.BATTERY, "critical battery: 5.0%", 5.0)


class TestNotificationBroadcaster:
    def test_is_a_notification_service(self):
        broadcaster = NotificationBroadcaster()
        try:
            assert isinstance(broadcaster, NotificationService)
        finally:
            broadcaster.close()

    def test_fans_out_to_every_backend(self, notifier_factory):
        first, second = notifier_factory(), notifier_factory()
        broadcaster = NotificationBroadcaster([first, second])
        try:
            broadcaster.send_anomaly_alert(_anomaly())
            broadcaster.send_quarantine_alert("d1", "invalid data")
            assert broadcaster.flush(timeout=5)
        finally:
            broadcaster.close()

        for backend in (first, second):
            assert len(backend.anomalies) == 1
            assert backend.quarantines == [("d1", "invalid data")]

    def test_failure_is_swallowed_and_counted(self, recording_notifier):
        broadcaster = NotificationBroadcaster([FailingNotifier(), recording_notifier])
        try:
            broadcaster.send_quarantine_alert("d1", "x")
            broadcaster.flush(timeout=5)
        finally:
            broadcaster.close()
        assert broadcaster.failures == 1
        assert recording_notifier.quarantines == [("d1", "x")]

    def test_send_does_not_wait_for_backend(self):
        release = threading.Event()
        slow = SlowNotifier(release)
        broadcaster = NotificationBroadcaster([slow])
        try:
            broadcaster.send_quarantine_alert("d1", "x")
            assert slow.quarantines == []
            release.set()
            assert broadcaster.flush(timeout=5)
        finally:
            release.set()
            broadcaster.close()
        assert slow.quarantines == [("d1", "x")]

    def test_alerts_after_close_are_dropped(self, recording_notifier):
        broadcaster = NotificationBroadcaster([recording_notifier])
        broadcaster.close()
        broadcaster.send_anomaly_alert(_anomaly())
        assert recording_notifier.anomalies == []


class TestBuildNotifiers:
    def test_no_backends_by_default(self, make_config):
        broadcaster = build_notifiers(make_config())
        try:
            assert broadcaster.services == []
        finally:
            broadcaster.close()

    def test_enabled_and_configured_backends(self, make_config):
        config = make_config(
            enable_slack=True,
            slack_webhook_url="https://hooks.slack.test/x",
            enable_telegram=True,
            telegram_bot_token="TOKEN",
            telegram_chat_id="42",
        )
        broadcaster = build_notifiers(config)
        try:
            assert [type(s) for s in broadcaster.services] == [SlackNotifier, TelegramNotifier]
        finally:
            broadcaster.close()

    def test_enabled_without_credentials_is_skipped(self, make_config):
        broadcaster = build_notifiers(make_config(enable_slack=True, enable_telegram=True, telegram_bot_token="T"))
        try:
            assert broadcaster.services == []
        finally:
            broadcaster.close()
