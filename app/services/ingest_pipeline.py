"""
Ingest Pipeline
===============

Single entry point for one inbound telemetry message.

Sequence (each step may short-circuit by raising):

1. decode the payload into a ``SensorReading``           -> ``DecodeError``
2. rate limiter admission                                 -> ``RateLimitExceeded``
3. structural validation                                  -> ``ValidationError``
4. load or create the ``DeviceState``
5. quarantine check                                       -> ``QuarantinedDeviceRejected``
6. threshold detection
7. behavior analysis (may quarantine the device)
8. persist the device state

Steps 4-8 run under a per-device lock so concurrent readings for one
device never race on its counters and averages, while different devices
proceed in parallel. Alerts are collected during the locked section and
dispatched after the lock is released.

The pipeline is best effort: anomalies already persisted are not rolled
back when a later step fails.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Union

from app.domain.anomaly import Anomaly
from app.domain.device import DeviceState
from app.domain.exceptions import QuarantinedDeviceRejected, RateLimitExceeded, StoreError, ValidationError
from app.domain.reading import SensorReading
from app.enums.anomaly import AnomalyType
from app.processors.validation_processor import ReadingValidator
from app.schemas.telemetry import decode_reading
from app.security.rate_limiter import RateLimiter
from app.services.detection import BehaviorAnalyzer, ThresholdDetector
from app.services.quarantine_manager import QuarantineManager
from app.utils.concurrency import KeyedLocks
from app.utils.time import coerce_datetime, from_timestamp

if TYPE_CHECKING:
    from app.services.protocols import AnomalyStore, DeviceStore, NotificationService

logger = logging.getLogger(__name__)

RawReading = Union[bytes, str, SensorReading]


@dataclass
class _PendingAlerts:
    """Alerts gathered while the device lock is held."""

    anomalies: List[Anomaly] = field(default_factory=list)
    quarantines: List[tuple] = field(default_factory=list)


@dataclass(frozen=True)
class DeviceReport:
    """Read-only summary of one device."""

    device_id: str
    device: Optional[DeviceState]
    quarantined: bool
    recent_anomalies: int
    since: datetime

    def to_dict(self) -> dict:
        return {
            "device_id": self.device_id,
            "device": self.device.to_dict() if self.device else None,
            "quarantined": self.quarantined,
            "recent_anomalies": self.recent_anomalies,
            "since": self.since.isoformat(),
        }


class IngestPipeline:
    """Orchestrates admission, validation, detection and quarantine per reading."""

    def __init__(
        self,
        *,
        device_store: "DeviceStore",
        anomaly_store: "AnomalyStore",
        rate_limiter: RateLimiter,
        quarantine: QuarantineManager,
        validator: Optional[ReadingValidator] = None,
        threshold_detector: Optional[ThresholdDetector] = None,
        behavior_analyzer: Optional[BehaviorAnalyzer] = None,
        notifier: Optional["NotificationService"] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._clock = clock or time.time
        self.device_store = device_store
        self.anomaly_store = anomaly_store
        self.rate_limiter = rate_limiter
        self.quarantine = quarantine
        self.validator = validator or ReadingValidator(clock=self._clock)
        self.threshold_detector = threshold_detector or ThresholdDetector()
        self.behavior_analyzer = behavior_analyzer or BehaviorAnalyzer()
        self.notifier = notifier
        # one lock per device id ever seen, rate-limited strangers included
        self._device_locks = KeyedLocks()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def process(self, raw: RawReading) -> SensorReading:
        """
        Run one message through the pipeline.

        Args:
            raw: JSON payload (bytes or str) or an already decoded reading

        Returns:
            The accepted reading

        Raises:
            DecodeError: payload malformed; nothing recorded
            RateLimitExceeded: device over budget; anomaly recorded and device quarantined
            ValidationError: field out of range; device quarantined
            QuarantinedDeviceRejected: device currently quarantined; message dropped
            StoreError: device state could not be persisted
        """
        reading = raw if isinstance(raw, SensorReading) else decode_reading(raw)
        device_id = reading.device_id

        if not self.rate_limiter.admit(device_id):
            self._reject_rate_limited(device_id)

        try:
            self.validator.validate(reading)
        except ValidationError as exc:
            logger.warning("Invalid data from %s: %s", device_id, exc)
            self.quarantine.quarantine(device_id, "invalid data")
            self._notify(_PendingAlerts(quarantines=[(device_id, "invalid data")]))
            raise

        pending = _PendingAlerts()
        try:
            with self._device_locks.get(device_id):
                self._process_locked(reading, pending)
        finally:
            self._notify(pending)
        return reading

    def device_report(self, device_id: str, since: Any = None) -> DeviceReport:
        """Summarize a device: state, quarantine flag and anomalies since *since* (default: last hour).

        *since* may be a datetime, POSIX seconds or an ISO-8601 string.
        """
        if since is None:
            since = from_timestamp(self._clock()) - timedelta(hours=1)
        else:
            parsed = coerce_datetime(since)
            if parsed is None:
                raise ValueError(f"invalid 'since' value: {since!r}")
            since = parsed
        return DeviceReport(
            device_id=device_id,
            device=self.device_store.get_device(device_id),
            quarantined=self.quarantine.is_quarantined(device_id),
            recent_anomalies=self.anomaly_store.count_by_device(device_id, since),
            since=since,
        )

    # ------------------------------------------------------------------ #
    # Steps
    # ------------------------------------------------------------------ #

    def _reject_rate_limited(self, device_id: str) -> None:
        count = self.rate_limiter.count(device_id)
        limit = self.rate_limiter.max_messages
        window = self.rate_limiter.window_seconds
        reason = f"rate limit abuse: {count} messages/{self._window_label(window)}"

        anomaly = Anomaly(
            device_id=device_id,
            anomaly_type=AnomalyType.BEHAVIOR_PATTERN,
            description=f"excessive message rate: {count} messages in {window:g}s (max {limit})",
            value=count,
            timestamp=from_timestamp(self._clock()),
        )
        logger.warning("Rate limit exceeded for %s: %s", device_id, anomaly.description)
        self._save_anomaly(anomaly)
        self.quarantine.quarantine(device_id, reason)

        with self._device_locks.get(device_id):
            device = self.device_store.get_device(device_id)
            if device is not None:
                self._mirror_rate_window(device)

        self._notify(_PendingAlerts(anomalies=[anomaly], quarantines=[(device_id, reason)]))
        raise RateLimitExceeded(device_id, count, limit, window)

    def _process_locked(self, reading: SensorReading, pending: _PendingAlerts) -> None:
        device_id = reading.device_id
        now = from_timestamp(self._clock())

        device = self.device_store.get_device(device_id)
        if device is None:
            device = DeviceState.new(device_id, reading.device_type, now=now)
            self.device_store.save_device(device)
            logger.info("New device registered: %s (%s)", device_id, device.device_type or "unknown type")
        elif not device.device_type and reading.device_type:
            device.device_type = reading.device_type
        self._mirror_rate_window(device)

        if self.quarantine.is_quarantined(device_id):
            logger.warning("Message rejected: device %s is quarantined", device_id)
            raise QuarantinedDeviceRejected(device_id)

        for anomaly in self.threshold_detector.detect(reading, now=now):
            logger.warning("Anomaly on %s: %s", device_id, anomaly.description)
            self._save_anomaly(anomaly)
            pending.anomalies.append(anomaly)

        result = self.behavior_analyzer.analyze(device, reading, now=now)
        for anomaly in result.anomalies:
            logger.warning("Suspicious pattern on %s: %s", device_id, anomaly.description)
            self._save_anomaly(anomaly)
            pending.anomalies.append(anomaly)

        if result.quarantine_triggered:
            self.quarantine.quarantine(device_id, result.reason)
            pending.quarantines.append((device_id, result.reason))

        self.device_store.update_device(device)
        if not pending.anomalies:
            logger.debug("Reading from %s accepted", device_id)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _mirror_rate_window(self, device: DeviceState) -> None:
        snapshot = self.rate_limiter.snapshot(device.device_id)
        device.rate_window.count = snapshot.count
        device.rate_window.window_start = snapshot.window_start
        device.rate_window.blocked = snapshot.blocked

    def _save_anomaly(self, anomaly: Anomaly) -> None:
        try:
            self.anomaly_store.save_anomaly(anomaly)
        except StoreError as exc:
            logger.error("Failed to persist anomaly %s: %s", anomaly.anomaly_id, exc)
        except Exception as exc:
            logger.exception("Unexpected error persisting anomaly %s: %s", anomaly.anomaly_id, exc)

    def _notify(self, pending: _PendingAlerts) -> None:
        if self.notifier is None:
            return
        for anomaly in pending.anomalies:
            try:
                self.notifier.send_anomaly_alert(anomaly)
            except Exception as exc:
                logger.error("Anomaly alert for %s failed: %s", anomaly.device_id, exc)
        for device_id, reason in pending.quarantines:
            try:
                self.notifier.send_quarantine_alert(device_id, reason)
            except Exception as exc:
                logger.error("Quarantine alert for %s failed: %s", device_id, exc)

    @staticmethod
    def _window_label(window_seconds: float) -> str:
        if window_seconds == 60:
            return "minute"
        return f"{window_seconds:g}s"
