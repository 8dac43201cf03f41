"""
Concurrency utilities.

Provides a `synchronized` decorator that acquires an instance `_lock` if
present, and `KeyedLocks`, a registry handing out one lock per key.
"""

from __future__ import annotations

import threading
from functools import wraps
from typing import Callable


def synchronized(func: Callable) -> Callable:
    """Decorator that acquires `self._lock` if present on the instance.

    If no `_lock` attribute exists on `self`, the function is executed
    without locking.
    """

    @wraps(func)
    def _wrapped(self, *args, **kwargs):
        lock = getattr(self, "_lock", None)
        if lock is None:
            return func(self, *args, **kwargs)
        with lock:
            return func(self, *args, **kwargs)

    return _wrapped


class KeyedLocks:
    """Lazily created per-key locks.

    The same key always maps to the same lock object, so callers using
    different keys never contend. Locks are never evicted: a caller may hold
    a lock it fetched earlier, and dropping it would let a second lock appear
    for the same key. The registry therefore grows by one entry per distinct
    key, which for device ids is bounded by the device population.
    """

    def __init__(self, factory: Callable[[], threading.Lock] = threading.Lock) -> None:
        self._factory = factory
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def get(self, key: str):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._factory()
                self._locks[key] = lock
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
