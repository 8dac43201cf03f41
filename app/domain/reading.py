"""
Sensor Reading Value Object
============================
Immutable value object representing one device transmission.

Numeric fields use ``0`` for "not reported": the wire format omits zero
values, so a reading of exactly 0 °C or 0 % battery is indistinguishable
from an absent field. This is a known limitation kept for compatibility
with existing device firmware.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SensorReading:
    """
    Immutable sensor reading value object.
    Owned by the pipeline invocation that decoded it.
    """

    device_id: str
    timestamp: int  # POSIX seconds, as sent by the device

    device_type: str = ""
    security_level: str = ""

    temperature: float = 0.0  # °C
    humidity: float = 0.0  # %
    battery_level: float = 0.0  # %
    signal_strength: float = 0.0  # %
    access_attempts: int = 0

    # Tri-state flags: None means the device did not report the field
    motion_detected: bool | None = None
    recording: bool | None = None
    locked: bool | None = None

    @property
    def has_temperature(self) -> bool:
        return self.temperature != 0

    @property
    def has_battery(self) -> bool:
        return self.battery_level > 0

    @property
    def has_signal(self) -> bool:
        return self.signal_strength > 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary"""
        return {
            "device_id": self.device_id,
            "device_type": self.device_type,
            "timestamp": self.timestamp,
            "security_level": self.security_level,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "battery_level": self.battery_level,
            "signal_strength": self.signal_strength,
            "access_attempts": self.access_attempts,
            "motion_detected": self.motion_detected,
            "recording": self.recording,
            "locked": self.locked,
        }
