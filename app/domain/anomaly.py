"""
Anomaly Domain Objects
======================
Immutable record of one detected anomaly.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

from app.enums.anomaly import AnomalySeverity, AnomalyType
from app.utils.time import utc_now

# Detectors report a float (°C, %), an int (attempt counts) or free text
AnomalyValue = Union[int, float, str]


def new_anomaly_id(device_id: str, anomaly_type: AnomalyType, timestamp: datetime) -> str:
    """Build ``<device>_<type>_<unix seconds>_<suffix>``; the suffix keeps ids unique within one second."""
    return f"{device_id}_{anomaly_type.value}_{int(timestamp.timestamp())}_{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class Anomaly:
    """Detected anomaly for a device. Never mutated after creation."""

    device_id: str
    anomaly_type: AnomalyType
    description: str
    value: AnomalyValue
    timestamp: datetime = field(default_factory=utc_now)
    severity: AnomalySeverity = AnomalySeverity.MEDIUM
    anomaly_id: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float, str)):
            raise TypeError(f"Unsupported anomaly value type: {type(self.value).__name__}")
        if not self.anomaly_id:
            object.__setattr__(self, "anomaly_id", new_anomaly_id(self.device_id, self.anomaly_type, self.timestamp))

    @property
    def value_kind(self) -> str:
        """Tag of the value variant: ``int``, ``float`` or ``str``."""
        if isinstance(self.value, str):
            return "str"
        if isinstance(self.value, int):
            return "int"
        return "float"

    def format_value(self) -> str:
        if self.value_kind == "float":
            return f"{self.value:.2f}"
        return str(self.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "anomaly_id": self.anomaly_id,
            "device_id": self.device_id,
            "type": self.anomaly_type.value,
            "description": self.description,
            "value": self.value,
            "value_kind": self.value_kind,
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity.value,
        }
