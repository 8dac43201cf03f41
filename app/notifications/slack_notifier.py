"""
Slack Notifier
==============
Posts anomaly and quarantine alerts to a Slack incoming webhook.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from app.domain.anomaly import Anomaly
from app.domain.exceptions import NotificationError
from app.notifications.formatting import severity_color, type_emoji
from app.utils.time import to_timestamp

logger = logging.getLogger(__name__)

BOT_USERNAME = "IoT Security Hub"
DEFAULT_TIMEOUT_SECONDS = 10.0


class SlackNotifier:
    """Slack incoming-webhook backend."""

    name = "slack"

    def __init__(
        self,
        webhook_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if not webhook_url:
            raise ValueError("webhook_url is required")
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._clock = clock or time.time

    def send_anomaly_alert(self, anomaly: Anomaly) -> None:
        message = {
            "username": BOT_USERNAME,
            "icon_emoji": ":warning:",
            "text": f"{type_emoji(anomaly.anomaly_type)} ANOMALY DETECTED",
            "attachments": [
                {
                    "color": severity_color(anomaly.severity),
                    "title": f"Anomaly on device: {anomaly.device_id}",
                    "text": anomaly.description,
                    "ts": int(to_timestamp(anomaly.timestamp)),
                    "fields": [
                        {"title": "Type", "value": anomaly.anomaly_type.value, "short": True},
                        {"title": "Severity", "value": anomaly.severity.value, "short": True},
                        {"title": "Device", "value": anomaly.device_id, "short": True},
                        {"title": "Value", "value": anomaly.format_value(), "short": True},
                    ],
                }
            ],
        }
        self._post(message)

    def send_quarantine_alert(self, device_id: str, reason: str) -> None:
        message = {
            "username": BOT_USERNAME,
            "icon_emoji": ":lock:",
            "text": "🔒 DEVICE QUARANTINED",
            "attachments": [
                {
                    "color": "danger",
                    "title": f"Device {device_id} placed in quarantine",
                    "text": f"Reason: {reason}",
                    "ts": int(self._clock()),
                    "fields": [
                        {"title": "Device", "value": device_id, "short": True},
                        {"title": "Status", "value": "QUARANTINED", "short": True},
                    ],
                }
            ],
        }
        self._post(message)

    def _post(self, message: Dict[str, Any]) -> None:
        try:
            response = requests.post(self.webhook_url, json=message, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotificationError(f"slack request failed: {e}", detail={"backend": self.name}) from e

        if response.status_code != 200:
            raise NotificationError(
                f"slack API returned status: {response.status_code}",
                detail={"backend": self.name, "status": response.status_code},
            )
        logger.debug("Slack alert delivered")
