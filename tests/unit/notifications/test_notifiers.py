"""
Tests for the Slack and Telegram backends with ``requests.post`` patched.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from app.domain.anomaly import Anomaly
from app.domain.exceptions import NotificationError
from app.enums.anomaly import AnomalyType
from app.notifications import SlackNotifier, TelegramNotifier

TS = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _anomaly() -> Anomaly:
    return Anomaly("d<1>", AnomalyType.TEMPERATURE, "extreme temperature: 85.00°C", 85.0, timestamp=TS)


def _response(status: int = 200, body=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.json.return_value = body if body is not None else {"ok": True}
    return response


class TestSlackNotifier:
    def test_anomaly_alert_payload(self):
        notifier = SlackNotifier("https://hooks.slack.test/x", timeout=3)
        with patch("app.notifications.slack_notifier.requests.post", return_value=_response()) as post:
            notifier.send_anomaly_alert(_anomaly())

        url = post.call_args.args[0]
        message = post.call_args.kwargs["json"]
        assert url == "https://hooks.slack.test/x"
        assert post.call_args.kwargs["timeout"] == 3
        assert message["username"] == "IoT Security Hub"
        attachment = message["attachments"][0]
        assert attachment["color"] == "warning"
        fields = {f["title"]: f["value"] for f in attachment["fields"]}
        assert fields == {"Type": "temperature", "Severity": "medium", "Device": "d<1>", "Value": "85.00"}

    def test_quarantine_alert_payload(self):
        notifier = SlackNotifier("https://hooks.slack.test/x", clock=lambda: 1700000000.0)
        with patch("app.notifications.slack_notifier.requests.post", return_value=_response()) as post:
            notifier.send_quarantine_alert("d1", "invalid data")

        attachment = post.call_args.kwargs["json"]["attachments"][0]
        assert attachment["color"] == "danger"
        assert attachment["text"] == "Reason: invalid data"
        assert attachment["ts"] == 1700000000

    def test_non_200_raises(self):
        notifier = SlackNotifier("https://hooks.slack.test/x")
        with patch("app.notifications.slack_notifier.requests.post", return_value=_response(500)):
            with pytest.raises(NotificationError, match="500"):
                notifier.send_quarantine_alert("d1", "x")

    def test_request_exception_raises(self):
        notifier = SlackNotifier("https://hooks.slack.test/x")
        with patch(
            "app.notifications.slack_notifier.requests.post",
            side_effect=requests.ConnectionError("refused"),
        ):
            with pytest.raises(NotificationError):
                notifier.send_anomaly_alert(_anomaly())

    def test_requires_url(self):
        with pytest.raises(ValueError):
            SlackNotifier("")


class TestTelegramNotifier:
    def test_anomaly_alert_is_html_escaped(self):
        notifier = TelegramNotifier("TOKEN", "42")
        with patch("app.notifications.telegram_notifier.requests.post", return_value=_response()) as post:
            notifier.send_anomaly_alert(_anomaly())

        assert post.call_args.args[0] == "https://api.telegram.org/botTOKEN/sendMessage"
        payload = post.call_args.kwargs["json"]
        assert payload["chat_id"] == "42"
        assert payload["parse_mode"] == "HTML"
        assert "d&lt;1&gt;" in payload["text"]
        assert "<b>ANOMALY DETECTED</b>" in payload["text"]
        assert "2024-01-01 12:00:00" in payload["text"]

    def test_quarantine_alert(self):
        notifier = TelegramNotifier("TOKEN", "42", clock=lambda: 1700000000.0)
        with patch("app.notifications.telegram_notifier.requests.post", return_value=_response()) as post:
            notifier.send_quarantine_alert("d1", "rate limit abuse: 11 messages/minute")
        text = post.call_args.kwargs["json"]["text"]
        assert "DEVICE QUARANTINED" in text
        assert "rate limit abuse: 11 messages/minute" in text

    def test_api_error_raises(self):
        notifier = TelegramNotifier("TOKEN", "42")
        body = {"ok": False, "description": "chat not found"}
        with patch("app.notifications.telegram_notifier.requests.post", return_value=_response(400, body)):
            with pytest.raises(NotificationError, match="chat not found"):
                notifier.send_quarantine_alert("d1", "x")

    def test_invalid_json_raises(self):
        notifier = TelegramNotifier("TOKEN", "42")
        response = _response()
        response.json.side_effect = ValueError("no json")
        with patch("app.notifications.telegram_notifier.requests.post", return_value=response):
            with pytest.raises(NotificationError):
                notifier.send_quarantine_alert("d1", "x")

    def test_requires_token_and_chat(self):
        with pytest.raises(ValueError):
            TelegramNotifier("TOKEN", "")
