from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator


class KeyedLock:
    """One re-entrant mutex per key (employee id).

    Work for the same key is serialized; different keys never contend except
    for the short registry lookup. Locks are never evicted, so the registry
    holds at most one lock per employee.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.RLock] = {}

    def _lock_for(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._lock_for(key)
        with lock:
            yield


class InFlightRegistry:
    """Tracks request keys currently being processed.

    ``claim`` returns False when the same key is already in flight, letting
    the caller reject a double submit instead of queueing a second write.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._keys: set[Hashable] = set()

    def claim(self, key: Hashable) -> bool:
        with self._guard:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def release(self, key: Hashable) -> None:
        with self._guard:
            self._keys.discard(key)
