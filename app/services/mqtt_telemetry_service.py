"""
MQTT Telemetry Service
======================

Router between the MQTT transport and the telemetry handler.

Each message received on the configured topic is handed to a bounded
worker pool, so paho's network thread never runs the pipeline itself.
Per-message failures are logged at a level matching their kind and
counted; nothing is raised back into paho's loop.

When the backlog reaches ``max_pending`` new messages are dropped with a
warning instead of queueing without bound.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Dict, Optional

from app.domain.exceptions import (
    DecodeError,
    IoTHubError,
    QuarantinedDeviceRejected,
    RateLimitExceeded,
    ValidationError,
)

if TYPE_CHECKING:
    from app.hardware.mqtt.mqtt_broker_wrapper import MQTTClientWrapper
    from app.services.telemetry_handler import TelemetryHandler

logger = logging.getLogger(__name__)


class MQTTTelemetryService:
    """Subscribes to device telemetry and feeds it to the handler on a worker pool."""

    def __init__(
        self,
        mqtt_client: "MQTTClientWrapper",
        handler: "TelemetryHandler",
        topic: str = "devices/+/telemetry",
        *,
        max_workers: int = 4,
        max_pending: Optional[int] = None,
    ) -> None:
        self.mqtt_client = mqtt_client
        self.handler = handler
        self.topic = topic
        self._executor = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="ingest")
        self._slots = threading.BoundedSemaphore(max_pending or max(1, max_workers) * 64)
        self._stats_lock = threading.Lock()
        self._stats: Counter = Counter()
        self._running = False

    def start(self) -> bool:
        """Subscribe to the telemetry topic."""
        if not self.mqtt_client.subscribe(self.topic, self._on_message):
            logger.error("Could not subscribe to telemetry topic %s", self.topic)
            return False
        self._running = True
        logger.info("Listening for telemetry on %s", self.topic)
        return True

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting messages and drain in-flight work."""
        self._running = False
        self._executor.shutdown(wait=wait)
        logger.info("MQTTTelemetryService stopped (%s)", dict(self.stats))

    @property
    def stats(self) -> Dict[str, int]:
        with self._stats_lock:
            return dict(self._stats)

    # ------------------------------------------------------------------ #
    # Callbacks
    # ------------------------------------------------------------------ #

    def _on_message(self, client: Any, userdata: Any, msg: Any) -> None:
        """paho callback; only queues the work."""
        self._count("received")
        if not self._running:
            self._count("dropped")
            return
        if not self._slots.acquire(blocking=False):
            self._count("dropped")
            logger.warning("Ingest backlog full; dropping message from %s", msg.topic)
            return
        try:
            self._executor.submit(self._process, msg.topic, bytes(msg.payload))
        except RuntimeError:
            # Executor already shut down
            self._slots.release()
            self._count("dropped")

    def _process(self, topic: str, payload: bytes) -> None:
        try:
            self.handler.handle(topic, payload)
            self._count("accepted")
        except DecodeError as e:
            self._count("decode_errors")
            logger.warning("Dropping malformed payload on %s: %s", topic, e)
        except RateLimitExceeded as e:
            self._count("rate_limited")
            logger.warning("%s", e)
        except ValidationError as e:
            self._count("invalid")
            logger.warning("Rejected reading from %s: %s", e.device_id, e)
        except QuarantinedDeviceRejected as e:
            self._count("quarantined")
            logger.info("Dropped message from quarantined device %s", e.device_id)
        except IoTHubError as e:
            self._count("errors")
            logger.error("Failed to process message on %s: %s", topic, e)
        except Exception as e:
            self._count("errors")
            logger.exception("Unexpected error processing message on %s: %s", topic, e)
        finally:
            self._slots.release()

    def _count(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1
