"""
Quarantine Manager
==================

Owns the quarantine lifecycle of devices::

    Clear ──quarantine()──▶ Quarantined ──release() / expiry / sweep──▶ Clear

Re-quarantining an already quarantined device restarts its timer.
Storage is delegated to the ``DeviceStore``; this class holds the
duration policy and logs every transition.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from app.domain.device import DeviceState

if TYPE_CHECKING:
    from app.services.protocols import DeviceStore
    from infrastructure.logging.audit import SecurityAuditLogger

logger = logging.getLogger(__name__)

DEFAULT_QUARANTINE_SECONDS = 300.0


class QuarantineManager:
    """Time-boxed quarantine of misbehaving devices."""

    def __init__(
        self,
        store: "DeviceStore",
        duration_seconds: float = DEFAULT_QUARANTINE_SECONDS,
        *,
        audit: Optional["SecurityAuditLogger"] = None,
    ) -> None:
        if duration_seconds <= 0:
            raise ValueError("duration_seconds must be > 0")
        self._store = store
        self._audit = audit
        self.duration_seconds = float(duration_seconds)

    def quarantine(self, device_id: str, reason: str) -> None:
        """Quarantine *device_id* now, restarting the timer if already quarantined."""
        self._store.quarantine(device_id, reason)
        logger.warning("Device %s quarantined for %ds: %s", device_id, self.duration_seconds, reason)
        if self._audit is not None:
            self._audit.log_event(device_id, "quarantine", "applied", reason=reason, duration=self.duration_seconds)

    def is_quarantined(self, device_id: str) -> bool:
        """True while the quarantine is younger than the configured duration; expired entries are dropped."""
        return self._store.is_quarantined(device_id, self.duration_seconds)

    def release(self, device_id: str) -> None:
        """Lift the quarantine. No-op for a device that is not quarantined."""
        self._store.release(device_id)
        logger.info("Device %s released from quarantine", device_id)
        if self._audit is not None:
            self._audit.log_event(device_id, "release", "manual")

    def sweep(self, duration_seconds: float | None = None) -> int:
        """Remove every quarantine older than *duration_seconds* (default: the configured duration)."""
        duration = self.duration_seconds if duration_seconds is None else duration_seconds
        removed = self._store.sweep_expired(duration)
        if removed:
            logger.info("Quarantine sweep released %d device(s)", removed)
            if self._audit is not None:
                self._audit.log_event("*", "sweep", "released", count=removed, duration=duration)
        else:
            logger.debug("Quarantine sweep found nothing to release")
        return removed

    def list_quarantined(self) -> List[DeviceState]:
        """Devices with a quarantine entry. Entries not yet swept may already be expired."""
        return self._store.list_quarantined()
