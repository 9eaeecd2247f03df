from __future__ import annotations

from datetime import datetime, timedelta, timezone
import threading
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


def ensure_aware(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """Clock that only moves when told to; used to drive sweeps deterministically."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = ensure_aware(start or datetime.now(timezone.utc))
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, delta: timedelta) -> datetime:
        with self._lock:
            self._now = self._now + delta
            return self._now

    def set(self, value: datetime) -> None:
        with self._lock:
            self._now = ensure_aware(value)


def utc_values(data: dict) -> dict:
    return {
        key: ensure_aware(value) if isinstance(value, datetime) else value
        for key, value in data.items()
    }
