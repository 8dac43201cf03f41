"""
In-memory anomaly store.

Write-once log keyed by anomaly id. Queries return anomalies whose
timestamp is strictly after ``since``, oldest first.
"""

from __future__ import annotations

import threading
from datetime import datetime

from app.domain.anomaly import Anomaly
from app.domain.exceptions import StoreError
from app.enums.anomaly import AnomalyType
from app.utils.concurrency import synchronized


class InMemoryAnomalyStore:
    """Append-only anomaly persistence."""

    def __init__(self) -> None:
        self._anomalies: dict[str, Anomaly] = {}
        self._lock = threading.RLock()

    @synchronized
    def save_anomaly(self, anomaly: Anomaly) -> None:
        if anomaly.anomaly_id in self._anomalies:
            raise StoreError(f"duplicate anomaly id: {anomaly.anomaly_id}", detail={"anomaly_id": anomaly.anomaly_id})
        self._anomalies[anomaly.anomaly_id] = anomaly

    @synchronized
    def list_by_device(self, device_id: str, since: datetime) -> list[Anomaly]:
        return self._select(lambda a: a.device_id == device_id, since)

    @synchronized
    def list_by_type(self, anomaly_type: AnomalyType, since: datetime) -> list[Anomaly]:
        anomaly_type = AnomalyType(anomaly_type)
        return self._select(lambda a: a.anomaly_type is anomaly_type, since)

    @synchronized
    def count_by_device(self, device_id: str, since: datetime) -> int:
        return sum(1 for a in self._anomalies.values() if a.device_id == device_id and a.timestamp > since)

    @synchronized
    def __len__(self) -> int:
        return len(self._anomalies)

    def _select(self, predicate, since: datetime) -> list[Anomaly]:
        matches = [a for a in self._anomalies.values() if predicate(a) and a.timestamp > since]
        matches.sort(key=lambda a: a.timestamp)
        return matches
