"""
Behavior Analyzer
=================
Maintains each device's rolling baseline and flags drift from it.

The analyzer mutates ``DeviceState.behavior`` in place and performs no
I/O. The caller must hold the device lock for the whole call and is
responsible for persisting anomalies, quarantining and notifying.

Baselines use ``avg = (avg + sample) / 2``, which weights recent samples
heavily; it is not an arithmetic mean.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from app.domain.anomaly import Anomaly
from app.domain.device import DeviceBehavior, DeviceState
from app.domain.reading import SensorReading
from app.enums.anomaly import AnomalyType
from app.utils.time import utc_now

logger = logging.getLogger(__name__)

TEMPERATURE_DRIFT_LIMIT = 20.0
BATTERY_DROP_LIMIT = 50.0
ACCESS_WINDOW = 3
ACCESS_BURST_LIMIT = 20
DEFAULT_ANOMALY_THRESHOLD = 3


@dataclass
class BehaviorResult:
    """Outcome of one analysis step."""

    anomalies: list[Anomaly] = field(default_factory=list)
    quarantine_triggered: bool = False
    reason: str = ""


class BehaviorAnalyzer:
    """Per-device drift and pattern detection."""

    def __init__(self, anomaly_threshold: int = DEFAULT_ANOMALY_THRESHOLD) -> None:
        if anomaly_threshold < 1:
            raise ValueError("anomaly_threshold must be >= 1")
        self.anomaly_threshold = anomaly_threshold

    def analyze(self, device: DeviceState, reading: SensorReading, *, now: datetime | None = None) -> BehaviorResult:
        """
        Fold *reading* into the device baseline.

        Increments ``message_count`` and refreshes ``last_seen`` on every call.
        When the accumulated anomaly count reaches the threshold the result
        carries a quarantine trigger and the count is reset to zero.
        """
        now = now or utc_now()
        behavior = device.behavior
        behavior.message_count += 1
        behavior.last_seen = now

        result = BehaviorResult()
        for anomaly in (
            self._check_temperature(behavior, reading, now),
            self._check_battery(behavior, reading, now),
            self._check_access_attempts(behavior, reading, now),
        ):
            if anomaly is not None:
                behavior.anomaly_count += 1
                result.anomalies.append(anomaly)

        if behavior.anomaly_count >= self.anomaly_threshold:
            result.quarantine_triggered = True
            result.reason = f"multiple anomalies detected ({behavior.anomaly_count})"
            logger.debug("Quarantine trigger for %s: %s", device.device_id, result.reason)
            behavior.anomaly_count = 0

        return result

    def _check_temperature(self, behavior: DeviceBehavior, reading: SensorReading, now: datetime) -> Anomaly | None:
        if not reading.has_temperature:
            return None
        if behavior.avg_temperature == 0:
            behavior.avg_temperature = reading.temperature
            return None

        previous = behavior.avg_temperature
        behavior.avg_temperature = (previous + reading.temperature) / 2
        diff = reading.temperature - previous
        if abs(diff) <= TEMPERATURE_DRIFT_LIMIT:
            return None
        return Anomaly(
            device_id=reading.device_id,
            anomaly_type=AnomalyType.BEHAVIOR_PATTERN,
            description=f"drastic temperature change: {reading.temperature:.1f}°C (average: {previous:.1f}°C)",
            value=float(diff),
            timestamp=now,
        )

    def _check_battery(self, behavior: DeviceBehavior, reading: SensorReading, now: datetime) -> Anomaly | None:
        if not reading.has_battery:
            return None
        if behavior.avg_battery == 0:
            behavior.avg_battery = reading.battery_level
            return None

        previous = behavior.avg_battery
        behavior.avg_battery = (previous + reading.battery_level) / 2
        drop = previous - reading.battery_level
        if drop <= BATTERY_DROP_LIMIT:
            return None
        return Anomaly(
            device_id=reading.device_id,
            anomaly_type=AnomalyType.BEHAVIOR_PATTERN,
            description=f"sudden battery drop: {reading.battery_level:.1f}% (average: {previous:.1f}%)",
            value=float(drop),
            timestamp=now,
        )

    def _check_access_attempts(
        self, behavior: DeviceBehavior, reading: SensorReading, now: datetime
    ) -> Anomaly | None:
        if reading.access_attempts <= 0:
            return None
        # deque(maxlen=10) drops the oldest entry on overflow
        behavior.access_attempts.append(reading.access_attempts)
        if len(behavior.access_attempts) < ACCESS_WINDOW:
            return None

        recent = sum(list(behavior.access_attempts)[-ACCESS_WINDOW:])
        if recent <= ACCESS_BURST_LIMIT:
            return None
        return Anomaly(
            device_id=reading.device_id,
            anomaly_type=AnomalyType.BEHAVIOR_PATTERN,
            description=f"possible brute force attack: {recent} attempts in last {ACCESS_WINDOW} messages",
            value=int(recent),
            timestamp=now,
        )
