"""
Device Rate Limiter
===================

Per-device admission control for inbound telemetry.

Two policies are available:

* **sliding** – keeps the timestamps admitted inside the trailing window
  and prunes them on every call (accurate, default).
* **fixed** – a counter that resets when ``window_seconds`` have elapsed
  since the window opened.

State is split across lock-striped shards so that devices hashing to
different shards never contend. Calls for the same device always land on
the same shard and serialize there, which keeps the count exact.

A rejected call does not consume capacity; it only marks the device as
blocked until its next admitted message.
"""

from __future__ import annotations

import logging
import threading
import time
import zlib
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

from app.enums.anomaly import RateLimitPolicy

logger = logging.getLogger(__name__)

DEFAULT_SHARD_COUNT = 16

RecordT = TypeVar("RecordT")


@dataclass(slots=True)
class _SlidingRecord:
    timestamps: deque = field(default_factory=deque)
    blocked: bool = False


@dataclass(slots=True)
class _FixedRecord:
    count: int = 0
    window_start: float = 0.0
    blocked: bool = False


@dataclass(frozen=True)
class WindowSnapshot:
    """Point-in-time view of one device's admission window."""

    count: int
    window_start: float
    blocked: bool


class _Shard(Generic[RecordT]):
    __slots__ = ("lock", "records")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.records: dict[str, RecordT] = {}


class RateLimiter(ABC, Generic[RecordT]):
    """Base class for the per-device admission policies."""

    policy: RateLimitPolicy

    def __init__(
        self,
        max_messages: int = 10,
        window_seconds: float = 60.0,
        *,
        clock: Callable[[], float] | None = None,
        shard_count: int = DEFAULT_SHARD_COUNT,
    ) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.max_messages = max_messages
        self.window_seconds = float(window_seconds)
        self._clock = clock or time.time
        self._shards: list[_Shard[RecordT]] = [_Shard() for _ in range(max(1, shard_count))]

    def _shard(self, device_id: str) -> _Shard[RecordT]:
        return self._shards[zlib.crc32(device_id.encode("utf-8")) % len(self._shards)]

    # -- public API --------------------------------------------------------

    def admit(self, device_id: str) -> bool:
        """Return True and record the message if *device_id* is under its limit."""
        shard = self._shard(device_id)
        with shard.lock:
            now = self._clock()
            record = shard.records.get(device_id)
            if record is None:
                record = self._new_record(now)
                shard.records[device_id] = record
            admitted = self._admit(record, now)
        if not admitted:
            logger.debug("Rate limit reached for %s (%d/%ds)", device_id, self.max_messages, self.window_seconds)
        return admitted

    def count(self, device_id: str) -> int:
        """Number of admitted messages inside the current window."""
        return self.snapshot(device_id).count

    def is_blocked(self, device_id: str) -> bool:
        return self.snapshot(device_id).blocked

    def snapshot(self, device_id: str) -> WindowSnapshot:
        shard = self._shard(device_id)
        with shard.lock:
            record = shard.records.get(device_id)
            if record is None:
                return WindowSnapshot(count=0, window_start=0.0, blocked=False)
            return self._snapshot(record, self._clock())

    def reset(self, device_id: str) -> None:
        """Forget all history for *device_id*."""
        shard = self._shard(device_id)
        with shard.lock:
            shard.records.pop(device_id, None)

    def cleanup(self) -> int:
        """Evict devices with no admitted message inside the window. Returns the number evicted."""
        removed = 0
        for shard in self._shards:
            with shard.lock:
                now = self._clock()
                stale = [key for key, record in shard.records.items() if self._is_stale(record, now)]
                for key in stale:
                    del shard.records[key]
                removed += len(stale)
        if removed:
            logger.debug("Rate limiter cleanup evicted %d idle devices", removed)
        return removed

    def tracked_devices(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.records)
        return total

    # -- policy hooks --------------------------------------------------------

    @abstractmethod
    def _new_record(self, now: float) -> RecordT: ...

    @abstractmethod
    def _admit(self, record: RecordT, now: float) -> bool: ...

    @abstractmethod
    def _snapshot(self, record: RecordT, now: float) -> WindowSnapshot: ...

    @abstractmethod
    def _is_stale(self, record: RecordT, now: float) -> bool: ...


class SlidingWindowRateLimiter(RateLimiter[_SlidingRecord]):
    """Trailing-window limiter over admitted timestamps."""

    policy = RateLimitPolicy.SLIDING

    def _prune(self, record: _SlidingRecord, now: float) -> None:
        cutoff = now - self.window_seconds
        timestamps = record.timestamps
        while timestamps and timestamps[0] <= cutoff:
            timestamps.popleft()

    def _new_record(self, now: float) -> _SlidingRecord:
        return _SlidingRecord()

    def _admit(self, record: _SlidingRecord, now: float) -> bool:
        self._prune(record, now)
        if len(record.timestamps) >= self.max_messages:
            record.blocked = True
            return False
        record.timestamps.append(now)
        record.blocked = False
        return True

    def _snapshot(self, record: _SlidingRecord, now: float) -> WindowSnapshot:
        self._prune(record, now)
        start = record.timestamps[0] if record.timestamps else 0.0
        return WindowSnapshot(count=len(record.timestamps), window_start=start, blocked=record.blocked)

    def _is_stale(self, record: _SlidingRecord, now: float) -> bool:
        self._prune(record, now)
        return not record.timestamps


class FixedWindowRateLimiter(RateLimiter[_FixedRecord]):
    """Counter that resets once per window."""

    policy = RateLimitPolicy.FIXED

    def _roll(self, record: _FixedRecord, now: float) -> None:
        if now - record.window_start >= self.window_seconds:
            record.count = 0
            record.window_start = now
            record.blocked = False

    def _new_record(self, now: float) -> _FixedRecord:
        return _FixedRecord(window_start=now)

    def _admit(self, record: _FixedRecord, now: float) -> bool:
        self._roll(record, now)
        if record.count >= self.max_messages:
            record.blocked = True
            return False
        record.count += 1
        return True

    def _snapshot(self, record: _FixedRecord, now: float) -> WindowSnapshot:
        if now - record.window_start >= self.window_seconds:
            return WindowSnapshot(count=0, window_start=record.window_start, blocked=False)
        return WindowSnapshot(count=record.count, window_start=record.window_start, blocked=record.blocked)

    def _is_stale(self, record: _FixedRecord, now: float) -> bool:
        return now - record.window_start >= self.window_seconds


def create_rate_limiter(
    policy: RateLimitPolicy | str = RateLimitPolicy.SLIDING,
    max_messages: int = 10,
    window_seconds: float = 60.0,
    *,
    clock: Callable[[], float] | None = None,
    shard_count: int = DEFAULT_SHARD_COUNT,
) -> RateLimiter:
    """Build the limiter for *policy* (``sliding`` or ``fixed``)."""
    policy = RateLimitPolicy(policy)
    cls = SlidingWindowRateLimiter if policy is RateLimitPolicy.SLIDING else FixedWindowRateLimiter
    return cls(max_messages, window_seconds, clock=clock, shard_count=shard_count)
