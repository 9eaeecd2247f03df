from __future__ import annotations

import threading

from ..domain import Booking, StateSnapshot, TimeSlot, TrainerSettings


class StateStore:
    """In-memory home of slots, bookings and trainer settings.

    Entities are mutated in place by the services while holding their entity
    lock; the store only guards the collections themselves and tracks a change
    counter so the synchronizer knows when a flush is due.
    """

    def __init__(self) -> None:
        self._guard = threading.RLock()
        self.slots: dict[str, TimeSlot] = {}
        self.bookings: dict[str, Booking] = {}
        self.trainer_settings: dict[str, TrainerSettings] = {}
        self._version = 0
        self._synced_version = 0

    def add_slot(self, slot: TimeSlot) -> None:
        with self._guard:
            self.slots[slot.id] = slot
            self._version += 1

    def remove_slot(self, slot_id: str) -> None:
        with self._guard:
            self.slots.pop(slot_id, None)
            self._version += 1

    def add_booking(self, booking: Booking) -> None:
        with self._guard:
            self.bookings[booking.id] = booking
            self._version += 1

    def put_trainer_settings(self, settings: TrainerSettings) -> None:
        with self._guard:
            self.trainer_settings[settings.trainer_id] = settings
            self._version += 1

    def changed(self) -> None:
        with self._guard:
            self._version += 1

    def booking_numbers(self) -> set[str]:
        with self._guard:
            return {booking.booking_number for booking in self.bookings.values()}

    def all_slots(self) -> list[TimeSlot]:
        with self._guard:
            return list(self.slots.values())

    def all_bookings(self) -> list[Booking]:
        with self._guard:
            return list(self.bookings.values())

    @property
    def is_dirty(self) -> bool:
        with self._guard:
            return self._version != self._synced_version

    def snapshot(self) -> tuple[int, StateSnapshot]:
        with self._guard:
            version = self._version
            snapshot = StateSnapshot(
                slots=[slot.model_copy(deep=True) for slot in self.slots.values()],
                bookings=[
                    booking.model_copy(deep=True) for booking in self.bookings.values()
                ],
                trainer_settings=[
                    settings.model_copy(deep=True)
                    for settings in self.trainer_settings.values()
                ],
            )
        return version, snapshot

    def mark_synced(self, version: int) -> None:
        with self._guard:
            self._synced_version = max(self._synced_version, version)

    def restore(self, snapshot: StateSnapshot) -> None:
        with self._guard:
            self.slots = {slot.id: slot for slot in snapshot.slots}
            self.bookings = {booking.id: booking for booking in snapshot.bookings}
            self.trainer_settings = {
                settings.trainer_id: settings for settings in snapshot.trainer_settings
            }
            self._version += 1
            self._synced_version = self._version
