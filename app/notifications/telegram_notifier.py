"""
Telegram Notifier
=================
Sends HTML-formatted alerts through the Telegram Bot API ``sendMessage``.
"""

from __future__ import annotations

import html
import logging
import time
from typing import Callable, Optional

import requests

from app.domain.anomaly import Anomaly
from app.domain.exceptions import NotificationError
from app.notifications.formatting import severity_emoji, type_emoji
from app.utils.time import format_datetime, from_timestamp

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.telegram.org"
DEFAULT_TIMEOUT_SECONDS = 10.0


class TelegramNotifier:
    """Telegram bot backend."""

    name = "telegram"

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if not bot_token or not chat_id:
            raise ValueError("bot_token and chat_id are required")
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self._clock = clock or time.time

    @property
    def url(self) -> str:
        return f"{API_BASE_URL}/bot{self.bot_token}/sendMessage"

    def send_anomaly_alert(self, anomaly: Anomaly) -> None:
        sev = severity_emoji(anomaly.severity)
        text = "\n".join(
            [
                f"{type_emoji(anomaly.anomaly_type)} <b>ANOMALY DETECTED</b> {sev}",
                "",
                f"🏷️ <b>Device:</b> {html.escape(anomaly.device_id)}",
                f"📋 <b>Type:</b> {anomaly.anomaly_type.value}",
                f"📊 <b>Severity:</b> {anomaly.severity.value} {sev}",
                f"💬 <b>Description:</b> {html.escape(anomaly.description)}",
                f"📈 <b>Value:</b> {html.escape(anomaly.format_value())}",
                f"⏰ <b>Timestamp:</b> {format_datetime(anomaly.timestamp)}",
            ]
        )
        self._send(text)

    def send_quarantine_alert(self, device_id: str, reason: str) -> None:
        text = "\n".join(
            [
                "🔒 <b>DEVICE QUARANTINED</b> 🚨",
                "",
                f"🏷️ <b>Device:</b> {html.escape(device_id)}",
                "⚠️ <b>Status:</b> QUARANTINED",
                f"📝 <b>Reason:</b> {html.escape(reason)}",
                f"⏰ <b>Timestamp:</b> {format_datetime(from_timestamp(self._clock()))}",
                "",
                "⚡ <b>Action required:</b> inspect the device immediately",
            ]
        )
        self._send(text)

    def _send(self, text: str) -> None:
        payload = {"chat_id": self.chat_id, "text": text, "parse_mode": "HTML"}
        try:
            response = requests.post(self.url, json=payload, timeout=self.timeout)
            body = response.json()
        except requests.RequestException as e:
            raise NotificationError(f"telegram request failed: {e}", detail={"backend": self.name}) from e
        except ValueError as e:
            raise NotificationError(f"telegram returned invalid JSON: {e}", detail={"backend": self.name}) from e

        if not body.get("ok"):
            raise NotificationError(
                f"telegram API error: {body.get('description', 'unknown error')}",
                detail={"backend": self.name, "status": response.status_code},
            )
        logger.debug("Telegram alert delivered to chat %s", self.chat_id)
