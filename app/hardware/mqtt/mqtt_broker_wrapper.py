"""
MQTT Client Wrapper
===================
Owns the paho connection used to receive device telemetry.

- remembers every (topic filter, callback) pair and replays the
  subscriptions whenever paho re-establishes the session
- routes each inbound message to all callbacks whose filter matches,
  using MQTT wildcard rules, so several consumers can share one client
- keeps ``ConnectionHealth`` counters for the status log
"""

import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Callable, Optional

import paho.mqtt.client as mqtt

from app.hardware.mqtt.client_factory import DEFAULT_RECONNECT_MAX_DELAY, create_mqtt_client
from app.utils.time import utc_now

_mqtt_logger = logging.getLogger("iothub.mqtt")

_LOG_MQTT_DISPATCH = os.getenv("IOTHUB_LOG_MQTT_DISPATCH", "").lower() in {"1", "true", "t", "yes", "on"}

MessageCallback = Callable[[mqtt.Client, object, mqtt.MQTTMessage], None]


def configure_mqtt_logging(log_dir: str = "logs") -> None:
    """Route transport logs to ``<log_dir>/mqtt.log`` instead of the main log."""
    if any(isinstance(h, RotatingFileHandler) for h in _mqtt_logger.handlers):
        return
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        os.path.join(log_dir, "mqtt.log"),
        maxBytes=10 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    _mqtt_logger.addHandler(handler)
    _mqtt_logger.setLevel(logging.INFO)
    _mqtt_logger.propagate = False


@dataclass
class ConnectionHealth:
    """Broker session and delivery counters."""

    connected: bool = False
    connection_attempts: int = 0
    reconnects: int = 0
    messages_received: int = 0
    unmatched_messages: int = 0
    callback_errors: int = 0
    subscriptions: int = 0
    last_error: str | None = None
    last_error_at: datetime | None = None

    def record_error(self, error) -> None:
        self.last_error = str(error)
        self.last_error_at = utc_now()

    def to_dict(self) -> dict:
        return {
            "connected": self.connected,
            "connection_attempts": self.connection_attempts,
            "reconnects": self.reconnects,
            "messages_received": self.messages_received,
            "unmatched_messages": self.unmatched_messages,
            "callback_errors": self.callback_errors,
            "subscriptions": self.subscriptions,
            "last_error": self.last_error,
            "last_error_at": self.last_error_at.isoformat() if self.last_error_at else None,
        }


class MQTTClientWrapper:
    """Telemetry-side MQTT session with wildcard fan-out."""

    def __init__(
        self,
        broker,
        port,
        client_id="",
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        keepalive: int = 60,
        reconnect_max_delay: int = DEFAULT_RECONNECT_MAX_DELAY,
        auto_connect: bool = True,
    ):
        """
        Args:
            broker (str): Broker host name or address.
            port (int): Broker TCP port.
            client_id (str): Identifier presented to the broker; empty lets paho pick one.
            username / password: Optional broker credentials.
            keepalive (int): MQTT keepalive in seconds.
            reconnect_max_delay (int): Cap of paho's reconnect back-off in seconds.
            auto_connect (bool): Call ``connect()`` from the constructor.
        """
        self.broker = broker
        self.port = port
        self.client_id = client_id
        self.keepalive = keepalive
        self.client = create_mqtt_client(
            client_id=client_id,
            username=username,
            password=password,
            reconnect_max_delay=reconnect_max_delay,
        )
        self.connected = False
        self.health = ConnectionHealth()
        self._routes_lock = threading.Lock()
        self._routes: list[tuple[str, MessageCallback]] = []

        self.client.on_message = self._dispatch_message
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        if auto_connect:
            self.connect()

    def connect(self) -> bool:
        """Open the session and start paho's network thread. Returns False on failure."""
        self.health.connection_attempts += 1
        try:
            self.client.connect(self.broker, self.port, self.keepalive)
            self.client.loop_start()
        except Exception as e:
            self.connected = False
            self.health.record_error(e)
            _mqtt_logger.error("Cannot reach MQTT broker %s:%s: %s", self.broker, self.port, e)
            return False

        self.connected = True
        self.health.connected = True
        _mqtt_logger.info("Connected to MQTT broker %s:%s", self.broker, self.port)
        return True

    def disconnect(self) -> None:
        """Close the session and forget all routes."""
        if not self.connected:
            return
        self.connected = False
        try:
            self.client.disconnect()
            self.client.loop_stop()
        except Exception as e:
            self.health.record_error(e)
            _mqtt_logger.error("Error while disconnecting from MQTT broker: %s", e)
        finally:
            self.health.connected = False
            with self._routes_lock:
                self._routes.clear()
            self.health.subscriptions = 0
            _mqtt_logger.info("MQTT session closed")

    def subscribe(self, topic: str, callback: MessageCallback) -> bool:
        """
        Subscribe *topic* (wildcards allowed) and route matching messages to *callback*.

        Returns:
            True once the broker request was queued successfully.
        """
        if not self.connected:
            _mqtt_logger.warning("Cannot subscribe to %s: not connected", topic)
            return False
        try:
            result, _mid = self.client.subscribe(topic)
        except Exception as e:
            self.health.record_error(e)
            _mqtt_logger.error("Subscribe to %s raised: %s", topic, e)
            return False
        if result != mqtt.MQTT_ERR_SUCCESS:
            _mqtt_logger.error("Subscribe to %s failed with rc=%s", topic, result)
            return False

        with self._routes_lock:
            self._routes.append((topic, callback))
            self.health.subscriptions = len(self._routes)
        _mqtt_logger.info("Routing %s to %s", topic, getattr(callback, "__name__", repr(callback)))
        return True

    # paho callbacks --------------------------------------------------------

    def _on_connect(self, client, userdata, flags, rc):
        if rc != 0:
            self.health.record_error(f"connect refused (rc={rc})")
            _mqtt_logger.error("MQTT broker refused connection: rc=%s", rc)
            return

        resumed = not self.health.connected
        self.health.connected = True
        with self._routes_lock:
            topics = sorted({topic for topic, _ in self._routes})
        if topics and resumed:
            self.health.reconnects += 1
            _mqtt_logger.info("Session re-established; restoring %d subscription(s)", len(topics))
        for topic in topics:
            client.subscribe(topic)

    def _on_disconnect(self, client, userdata, rc):
        self.health.connected = False
        if rc != 0 and self.connected:
            self.health.record_error(f"unexpected disconnect (rc={rc})")
            _mqtt_logger.warning("Lost connection to MQTT broker (rc=%s); paho will retry", rc)

    def _dispatch_message(self, client, userdata, msg) -> None:
        self.health.messages_received += 1
        if _LOG_MQTT_DISPATCH:
            _mqtt_logger.debug("Dispatch %s (%d bytes)", msg.topic, len(msg.payload))

        with self._routes_lock:
            routes = list(self._routes)

        matched = [callback for topic, callback in routes if mqtt.topic_matches_sub(topic, msg.topic)]
        if not matched:
            self.health.unmatched_messages += 1
            _mqtt_logger.warning("No route for MQTT topic %s", msg.topic)
            return

        for callback in matched:
            try:
                callback(client, userdata, msg)
            except Exception as e:
                self.health.callback_errors += 1
                _mqtt_logger.error("MQTT callback failed for %s: %s", msg.topic, e, exc_info=True)
