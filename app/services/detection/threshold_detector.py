"""
Threshold Detector
==================
Stateless instantaneous checks against fixed limits.

Each rule is independent, so one reading may yield several anomalies.
Zero-valued fields count as "not reported" and never trigger a rule.
"""

from __future__ import annotations

from datetime import datetime

from app.domain.anomaly import Anomaly
from app.domain.reading import SensorReading
from app.enums.anomaly import AnomalyType
from app.utils.time import utc_now

TEMPERATURE_HIGH = 50.0
TEMPERATURE_LOW = -10.0
BATTERY_CRITICAL = 10.0
ACCESS_ATTEMPTS_MAX = 5
SIGNAL_WEAK = 20.0


class ThresholdDetector:
    """Detects readings that are out of bounds on their own, without history."""

    def detect(self, reading: SensorReading, *, now: datetime | None = None) -> list[Anomaly]:
        """
        Check one reading against the fixed thresholds.

        Args:
            reading: Validated sensor reading
            now: Timestamp stamped on the anomalies (defaults to current UTC)

        Returns:
            Anomalies in rule order: temperature, battery, access attempts, signal
        """
        now = now or utc_now()
        device_id = reading.device_id
        anomalies: list[Anomaly] = []

        if reading.has_temperature and (
            reading.temperature > TEMPERATURE_HIGH or reading.temperature < TEMPERATURE_LOW
        ):
            anomalies.append(
                Anomaly(
                    device_id=device_id,
                    anomaly_type=AnomalyType.TEMPERATURE,
                    description=f"extreme temperature: {reading.temperature:.2f}°C",
                    value=float(reading.temperature),
                    timestamp=now,
                )
            )

        if reading.has_battery and reading.battery_level < BATTERY_CRITICAL:
            anomalies.append(
                Anomaly(
                    device_id=device_id,
                    anomaly_type=AnomalyType.BATTERY,
                    description=f"critical battery: {reading.battery_level:.1f}%",
                    value=float(reading.battery_level),
                    timestamp=now,
                )
            )

        if reading.access_attempts > ACCESS_ATTEMPTS_MAX:
            anomalies.append(
                Anomaly(
                    device_id=device_id,
                    anomaly_type=AnomalyType.ACCESS_ATTEMPTS,
                    description=f"multiple access attempts: {reading.access_attempts}",
                    value=int(reading.access_attempts),
                    timestamp=now,
                )
            )

        if reading.has_signal and reading.signal_strength < SIGNAL_WEAK:
            anomalies.append(
                Anomaly(
                    device_id=device_id,
                    anomaly_type=AnomalyType.SIGNAL_STRENGTH,
                    description=f"weak signal: {reading.signal_strength:.1f}%",
                    value=float(reading.signal_strength),
                    timestamp=now,
                )
            )

        return anomalies
