from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from pathlib import Path
import threading

from pydantic import ValidationError as SchemaError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload, sessionmaker

from ..core.errors import PersistenceError
from ..db import models
from ..domain import StateSnapshot
from .state_store import StateStore

logger = logging.getLogger(__name__)


class PersistenceGateway(ABC):
    """Durable home of the booking state, written as whole collections."""

    @abstractmethod
    def load(self) -> StateSnapshot:
        raise NotImplementedError

    @abstractmethod
    def save(self, snapshot: StateSnapshot) -> None:
        raise NotImplementedError


class SqlPersistenceGateway(PersistenceGateway):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def load(self) -> StateSnapshot:
        try:
            with self._session_factory() as db:
                slots = db.scalars(select(models.TimeSlotRecord)).all()
                bookings = db.scalars(
                    select(models.BookingRecord).options(
                        selectinload(models.BookingRecord.messages)
                    )
                ).all()
                settings = db.scalars(select(models.TrainerSettingsRecord)).all()
                return StateSnapshot(
                    slots=[record.to_domain() for record in slots],
                    bookings=[record.to_domain() for record in bookings],
                    trainer_settings=[record.to_domain() for record in settings],
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load state: {exc}") from exc

    def save(self, snapshot: StateSnapshot) -> None:
        """Replace every stored collection with the snapshot in one transaction."""
        try:
            with self._session_factory() as db:
                with db.begin():
                    db.execute(delete(models.BookingMessageRecord))
                    db.execute(delete(models.BookingRecord))
                    db.execute(delete(models.TimeSlotRecord))
                    db.execute(delete(models.TrainerSettingsRecord))
                    db.add_all(
                        models.TimeSlotRecord.from_domain(slot) for slot in snapshot.slots
                    )
                    db.add_all(
                        models.BookingRecord.from_domain(booking)
                        for booking in snapshot.bookings
                    )
                    db.add_all(
                        models.TrainerSettingsRecord.from_domain(settings)
                        for settings in snapshot.trainer_settings
                    )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save state: {exc}") from exc


class InMemoryPersistenceGateway(PersistenceGateway):
    def __init__(self, snapshot: StateSnapshot | None = None) -> None:
        self._snapshot = snapshot or StateSnapshot()
        self.saves = 0

    def load(self) -> StateSnapshot:
        return self._snapshot.model_copy(deep=True)

    def save(self, snapshot: StateSnapshot) -> None:
        self._snapshot = snapshot.model_copy(deep=True)
        self.saves += 1


class LocalCache:
    """JSON copy of the last known state, used when storage is unreachable."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def write(self, snapshot: StateSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(snapshot.model_dump_json(), encoding="utf-8")
        tmp_path.replace(self.path)

    def read(self) -> StateSnapshot | None:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            return StateSnapshot.model_validate_json(raw)
        except SchemaError:
            logger.warning("Ignoring unreadable local cache", extra={"path": str(self.path)})
            return None


class StateSynchronizer:
    """Moves state between the in-memory store and durable storage.

    A failed flush leaves the store dirty so the next cycle retries it; the
    local cache is refreshed on every flush attempt regardless of the remote
    outcome.
    """

    def __init__(
        self,
        store: StateStore,
        gateway: PersistenceGateway,
        cache: LocalCache | None = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.cache = cache
        self._flush_lock = threading.Lock()

    def load_initial(self) -> str:
        """Populate the store; returns where the state came from."""
        try:
            snapshot = self.gateway.load()
        except PersistenceError:
            logger.exception("Remote state unavailable, trying local cache")
        else:
            self.store.restore(snapshot)
            self._write_cache(snapshot)
            logger.info(
                "State loaded from storage",
                extra={"slots": len(snapshot.slots), "bookings": len(snapshot.bookings)},
            )
            return "remote"

        cached = self.cache.read() if self.cache else None
        if cached is None:
            logger.warning("Starting with empty state")
            return "empty"
        self.store.restore(cached)
        # cached state has not reached storage yet
        self.store.changed()
        logger.info(
            "State loaded from local cache",
            extra={"slots": len(cached.slots), "bookings": len(cached.bookings)},
        )
        return "cache"

    def flush(self) -> bool:
        if not self.store.is_dirty:
            return False
        with self._flush_lock:
            version, snapshot = self.store.snapshot()
            self._write_cache(snapshot)
            try:
                self.gateway.save(snapshot)
            except PersistenceError:
                logger.exception("State flush failed, will retry", extra={"version": version})
                return False
            self.store.mark_synced(version)
            logger.debug("State flushed", extra={"version": version})
            return True

    def _write_cache(self, snapshot: StateSnapshot) -> None:
        if self.cache is None:
            return
        try:
            self.cache.write(snapshot)
        except OSError:
            logger.exception("Failed to write local cache", extra={"path": str(self.cache.path)})
