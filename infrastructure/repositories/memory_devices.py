"""
In-memory device store.

Holds device records and a separate quarantine map under one re-entrant
lock. State is volatile and lives for the process lifetime.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.domain.device import DeviceState
from app.domain.exceptions import StoreError
from app.utils.concurrency import synchronized
from app.utils.time import from_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QuarantineEntry:
    since: float  # POSIX seconds
    reason: str


class InMemoryDeviceStore:
    """Device records keyed by id, plus the quarantine map."""

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.time
        self._devices: dict[str, DeviceState] = {}
        self._quarantine: dict[str, QuarantineEntry] = {}
        self._lock = threading.RLock()

    # Devices ----------------------------------------------------------------
    @synchronized
    def get_device(self, device_id: str) -> DeviceState | None:
        return self._devices.get(device_id)

    @synchronized
    def save_device(self, device: DeviceState) -> None:
        entry = self._quarantine.get(device.device_id)
        device.quarantined_at = from_timestamp(entry.since) if entry else None
        self._devices[device.device_id] = device

    @synchronized
    def update_device(self, device: DeviceState) -> None:
        if device.device_id not in self._devices:
            raise StoreError(f"device not found: {device.device_id}", detail={"device_id": device.device_id})
        self._devices[device.device_id] = device

    @synchronized
    def device_count(self) -> int:
        return len(self._devices)

    # Quarantine -------------------------------------------------------------
    @synchronized
    def quarantine(self, device_id: str, reason: str) -> None:
        now = self._clock()
        self._quarantine[device_id] = QuarantineEntry(since=now, reason=reason)
        device = self._devices.get(device_id)
        if device is not None:
            device.quarantined_at = from_timestamp(now)

    @synchronized
    def release(self, device_id: str) -> None:
        self._drop(device_id)

    def is_quarantined(self, device_id: str, duration_seconds: float) -> bool:
        with self._lock:
            entry = self._quarantine.get(device_id)
        if entry is None:
            return False
        if self._clock() - entry.since <= duration_seconds:
            return True

        # Expired: re-check under the lock, a sweep or a fresh quarantine may have raced us
        with self._lock:
            current = self._quarantine.get(device_id)
            if current is not None and self._clock() - current.since > duration_seconds:
                self._drop(device_id)
                return False
            return current is not None

    @synchronized
    def quarantine_reason(self, device_id: str) -> str | None:
        entry = self._quarantine.get(device_id)
        return entry.reason if entry else None

    @synchronized
    def list_quarantined(self) -> list[DeviceState]:
        result = []
        for device_id, entry in self._quarantine.items():
            device = self._devices.get(device_id)
            if device is None:
                # Quarantined before its first valid reading created a record
                device = DeviceState.new(device_id)
                device.quarantined_at = from_timestamp(entry.since)
            result.append(device)
        return result

    @synchronized
    def sweep_expired(self, duration_seconds: float) -> int:
        now = self._clock()
        expired = [key for key, entry in self._quarantine.items() if now - entry.since > duration_seconds]
        for device_id in expired:
            self._drop(device_id)
        return len(expired)

    def _drop(self, device_id: str) -> None:
        """Remove a quarantine entry; caller holds the lock."""
        self._quarantine.pop(device_id, None)
        device = self._devices.get(device_id)
        if device is not None:
            device.quarantined_at = None
