"""
Domain Package
==============
Readings, device state and anomalies.

``SensorReading`` and ``Anomaly`` are immutable value objects;
``DeviceState`` is the single mutable per-device entity.
"""

from .anomaly import Anomaly, AnomalyValue
from .device import DeviceBehavior, DeviceState, RateWindow
from .reading import SensorReading

__all__ = [
    "Anomaly",
    "AnomalyValue",
    "DeviceBehavior",
    "DeviceState",
    "RateWindow",
    "SensorReading",
]
