"""
Service protocols (structural typing interfaces).

Protocols let the ingest pipeline declare the *minimal* surface it depends
on without importing a concrete store or notifier, so an in-memory store
can be swapped for a durable one and tests can pass simple fakes.

Usage
-----
In a consumer service::

    from __future__ import annotations
    from typing import TYPE_CHECKING
    if TYPE_CHECKING:
        from app.services.protocols import DeviceStore

    class QuarantineManager:
        def __init__(self, store: "DeviceStore", ...): ...

At runtime ``InMemoryDeviceStore`` already satisfies the protocol via
structural subtyping; no explicit inheritance needed.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from app.domain.anomaly import Anomaly
from app.domain.device import DeviceState
from app.enums.anomaly import AnomalyType


@runtime_checkable
class DeviceStore(Protocol):
    """Keyed persistence of device state plus the quarantine map.

    Quarantine durations are passed in by the caller so the store holds
    no policy of its own.
    """

    def get_device(self, device_id: str) -> Optional[DeviceState]:
        """Return the device record, or ``None`` if never seen."""
        ...

    def save_device(self, device: DeviceState) -> None:
        """Insert or replace a device record."""
        ...

    def update_device(self, device: DeviceState) -> None:
        """Replace an existing device record. Raises ``StoreError`` if unknown."""
        ...

    def list_quarantined(self) -> List[DeviceState]:
        """Devices with a quarantine entry, expired or not."""
        ...

    def is_quarantined(self, device_id: str, duration_seconds: float) -> bool:
        """True if quarantined less than *duration_seconds* ago; expired entries are removed."""
        ...

    def quarantine(self, device_id: str, reason: str) -> None:
        """Start or restart the quarantine timer for *device_id*."""
        ...

    def release(self, device_id: str) -> None:
        """Remove any quarantine entry. No-op when absent."""
        ...

    def sweep_expired(self, duration_seconds: float) -> int:
        """Remove quarantine entries older than *duration_seconds*; return the count removed."""
        ...


@runtime_checkable
class AnomalyStore(Protocol):
    """Append-only anomaly log queried by time range."""

    def save_anomaly(self, anomaly: Anomaly) -> None:
        ...

    def list_by_device(self, device_id: str, since: datetime) -> List[Anomaly]:
        """Anomalies for *device_id* strictly after *since*, oldest first."""
        ...

    def list_by_type(self, anomaly_type: AnomalyType, since: datetime) -> List[Anomaly]:
        ...

    def count_by_device(self, device_id: str, since: datetime) -> int:
        ...


@runtime_checkable
class NotificationService(Protocol):
    """Outbound alert channel.

    Implementations raise ``NotificationError`` on delivery failure; the
    broadcaster logs and swallows it.
    """

    name: str

    def send_anomaly_alert(self, anomaly: Anomaly) -> None:
        ...

    def send_quarantine_alert(self, device_id: str, reason: str) -> None:
        ...
