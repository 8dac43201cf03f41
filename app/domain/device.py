"""
Device State Entity
===================
Per-device mutable record: admission window, behavioral baseline and
quarantine marker.

One instance exists per device id, created lazily on first sighting and
mutated in place for the lifetime of the process. Callers must hold the
device's lock (see ``IngestPipeline``) while mutating ``behavior`` or
``rate_window``.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

ACCESS_HISTORY_SIZE = 10


@dataclass
class RateWindow:
    """Admission counters mirrored from the rate limiter for observability."""

    count: int = 0
    window_start: float = 0.0
    blocked: bool = False


@dataclass
class DeviceBehavior:
    """
    Rolling behavioral baseline.

    ``avg_temperature`` / ``avg_battery`` equal to 0 mean "unset": no
    non-zero sample has been seen yet.
    """

    last_seen: datetime | None = None
    message_count: int = 0
    avg_temperature: float = 0.0
    avg_battery: float = 0.0
    access_attempts: deque = field(default_factory=lambda: deque(maxlen=ACCESS_HISTORY_SIZE))
    anomaly_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
            "message_count": self.message_count,
            "avg_temperature": self.avg_temperature,
            "avg_battery": self.avg_battery,
            "access_attempts": list(self.access_attempts),
            "anomaly_count": self.anomaly_count,
        }


@dataclass
class DeviceState:
    """Mutable state for a single device, keyed by ``device_id``."""

    device_id: str
    device_type: str = ""
    first_seen: datetime | None = None
    rate_window: RateWindow = field(default_factory=RateWindow)
    behavior: DeviceBehavior = field(default_factory=DeviceBehavior)
    # Set by the device store while the device is quarantined
    quarantined_at: datetime | None = None

    @classmethod
    def new(cls, device_id: str, device_type: str = "", *, now: datetime | None = None) -> "DeviceState":
        """Create a fresh record for a device seen for the first time."""
        return cls(device_id=device_id, device_type=device_type or "", first_seen=now)

    @property
    def is_quarantined(self) -> bool:
        return self.quarantined_at is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "device_type": self.device_type,
            "first_seen": self.first_seen.isoformat() if self.first_seen else None,
            "rate_window": {
                "count": self.rate_window.count,
                "window_start": self.rate_window.window_start,
                "blocked": self.rate_window.blocked,
            },
            "behavior": self.behavior.to_dict(),
            "quarantined_at": self.quarantined_at.isoformat() if self.quarantined_at else None,
        }
