"""
Notifications
=============
Outbound alert backends and the broadcaster that fans out to them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .broadcaster import NotificationBroadcaster
from .slack_notifier import SlackNotifier
from .telegram_notifier import TelegramNotifier

if TYPE_CHECKING:
    from app.config import AppConfig

logger = logging.getLogger(__name__)


def build_notifiers(config: "AppConfig") -> NotificationBroadcaster:
    """Create a broadcaster with every backend that is enabled and fully configured."""
    broadcaster = NotificationBroadcaster(max_workers=config.notification_worker_count)
    timeout = config.notification_timeout_seconds

    if config.enable_slack:
        if config.slack_webhook_url:
            broadcaster.add_service(SlackNotifier(config.slack_webhook_url, timeout=timeout))
        else:
            logger.warning("Slack notifications enabled but IOTHUB_SLACK_WEBHOOK_URL is not set")

    if config.enable_telegram:
        if config.telegram_bot_token and config.telegram_chat_id:
            broadcaster.add_service(
                TelegramNotifier(config.telegram_bot_token, config.telegram_chat_id, timeout=timeout)
            )
        else:
            logger.warning("Telegram notifications enabled but bot token or chat id is missing")

    if not broadcaster.services:
        logger.info("No notification backends configured; alerts are logged only")
    return broadcaster


__all__ = ["NotificationBroadcaster", "SlackNotifier", "TelegramNotifier", "build_notifiers"]
