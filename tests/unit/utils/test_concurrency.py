"""
Tests for the per-key lock registry.
"""

from __future__ import annotations

import threading

from app.utils.concurrency import KeyedLocks, synchronized


def test_same_key_returns_same_lock():
    locks = KeyedLocks()
    assert locks.get("d1") is locks.get("d1")
    assert locks.get("d1") is not locks.get("d2")


def test_registry_grows_once_per_distinct_key():
    locks = KeyedLocks()
    for _ in range(5):
        for key in ("d1", "d2", "d3"):
            locks.get(key)
    assert len(locks) == 3


def test_concurrent_first_access_yields_one_lock():
    locks = KeyedLocks()
    seen = []
    barrier = threading.Barrier(8)

    def grab():
        barrier.wait()
        seen.append(locks.get("shared"))

    threads = [threading.Thread(target=grab) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({id(lock) for lock in seen}) == 1
    assert len(locks) == 1


def test_synchronized_uses_instance_lock():
    class Counter:
        def __init__(self):
            self._lock = threading.Lock()
            self.value = 0

        @synchronized
        def bump(self):
            assert self._lock.locked()
            self.value += 1

    counter = Counter()
    counter.bump()
    assert counter.value == 1
