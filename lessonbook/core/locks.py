from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import threading


class EntityLocks:
    """Per-entity mutexes keyed by ``(kind, id)``.

    Lock order across kinds is always booking before slot.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, str], threading.Lock] = {}

    def _get(self, kind: str, entity_id: str) -> threading.Lock:
        key = (kind, entity_id)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, kind: str, entity_id: str) -> Iterator[None]:
        lock = self._get(kind, entity_id)
        with lock:
            yield

    def slot(self, slot_id: str):
        return self.hold("slot", slot_id)

    def booking(self, booking_id: str):
        return self.hold("booking", booking_id)
