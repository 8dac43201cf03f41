"""
In-memory repositories
======================
Volatile reference implementations of the device and anomaly stores.
"""

from .memory_anomalies import InMemoryAnomalyStore
from .memory_devices import InMemoryDeviceStore, QuarantineEntry

__all__ = ["InMemoryAnomalyStore", "InMemoryDeviceStore", "QuarantineEntry"]
