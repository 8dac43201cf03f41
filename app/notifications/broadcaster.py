"""
Notification Broadcaster
========================

Fans every alert out to all registered backends on a bounded thread pool.

Dispatch is fire-and-forget: callers return as soon as the work is
queued. A backend failure is logged and swallowed, so one broken channel
never affects the others or the ingest pipeline.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import TYPE_CHECKING, Callable, List, Optional, Set

from app.domain.anomaly import Anomaly

if TYPE_CHECKING:
    from app.services.protocols import NotificationService

logger = logging.getLogger(__name__)


class NotificationBroadcaster:
    """Composite ``NotificationService`` dispatching to every backend concurrently."""

    name = "broadcast"

    def __init__(self, services: Optional[List["NotificationService"]] = None, max_workers: int = 4) -> None:
        self._services: List["NotificationService"] = list(services or [])
        self._lock = threading.Lock()
        self._pending: Set[Future] = set()
        self._executor = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="notify")
        self._closed = False
        self.failures = 0

    def add_service(self, service: "NotificationService") -> None:
        with self._lock:
            self._services.append(service)
        logger.info("Notification backend registered: %s", getattr(service, "name", type(service).__name__))

    @property
    def services(self) -> List["NotificationService"]:
        with self._lock:
            return list(self._services)

    def send_anomaly_alert(self, anomaly: Anomaly) -> None:
        for service in self.services:
            self._submit(service, "anomaly", lambda s=service: s.send_anomaly_alert(anomaly))

    def send_quarantine_alert(self, device_id: str, reason: str) -> None:
        for service in self.services:
            self._submit(service, "quarantine", lambda s=service: s.send_quarantine_alert(device_id, reason))

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued deliveries. Returns False if some are still running at *timeout*."""
        with self._lock:
            pending = list(self._pending)
        _, not_done = wait_futures(pending, timeout=timeout)
        return not not_done

    def close(self, wait: bool = True) -> None:
        """Stop accepting alerts and drain the pool."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=wait)
        logger.info("Notification broadcaster closed")

    def _submit(self, service: "NotificationService", kind: str, send: Callable[[], None]) -> None:
        backend = getattr(service, "name", type(service).__name__)
        with self._lock:
            if self._closed:
                logger.warning("Dropping %s alert for %s: broadcaster closed", kind, backend)
                return
            future = self._executor.submit(self._deliver, backend, kind, send)
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _deliver(self, backend: str, kind: str, send: Callable[[], None]) -> None:
        try:
            send()
        except Exception as e:
            with self._lock:
                self.failures += 1
            logger.error("Error sending %s notification via %s: %s", kind, backend, e)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
