from __future__ import annotations

from datetime import datetime
import logging
from typing import TYPE_CHECKING

from ..core.clock import Clock, ensure_aware
from ..core.constants import MINIMUM_LEAD_TIME
from ..core.errors import (
    AuthorizationError,
    LeadTimeViolation,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from ..core.locks import EntityLocks
from ..domain import Actor, TimeSlot
from .results import OperationResult, operation
from .state_store import StateStore
from .trainer_settings_service import TrainerSettingsService

if TYPE_CHECKING:
    from .booking_service import BookingLifecycleManager

logger = logging.getLogger(__name__)


class TimeSlotRegistry:
    def __init__(
        self,
        store: StateStore,
        locks: EntityLocks,
        clock: Clock,
        trainer_settings: TrainerSettingsService,
    ) -> None:
        self.store = store
        self.locks = locks
        self.clock = clock
        self.trainer_settings = trainer_settings
        self._lifecycle: BookingLifecycleManager | None = None

    def bind_lifecycle(self, lifecycle: BookingLifecycleManager) -> None:
        self._lifecycle = lifecycle

    def _require(self, slot_id: str) -> TimeSlot:
        slot = self.store.slots.get(slot_id)
        if slot is None:
            raise NotFoundError("Slot not found")
        return slot

    def get(self, slot_id: str) -> TimeSlot | None:
        slot = self.store.slots.get(slot_id)
        return slot.model_copy(deep=True) if slot else None

    @operation
    def create_slot(
        self, actor: Actor, trainer_id: str, start_time: datetime, duration_minutes: int
    ) -> OperationResult:
        if not (actor.is_admin or (actor.is_trainer and actor.id == trainer_id)):
            raise AuthorizationError("Only the trainer or an administrator may publish slots")
        if duration_minutes <= 0:
            raise ValidationError("Duration must be positive")
        start_time = ensure_aware(start_time)
        now = self.clock.now()
        if start_time <= now:
            raise ValidationError("Slot must start in the future")
        price = self.trainer_settings.get(trainer_id).price_for(duration_minutes)
        slot = TimeSlot(
            trainer_id=trainer_id,
            trainer_name=actor.name if actor.id == trainer_id else "",
            start_time=start_time,
            duration_minutes=duration_minutes,
            price=price,
            created_at=now,
        )
        self.store.add_slot(slot)
        logger.info(
            "Slot created",
            extra={"slot_id": slot.id, "trainer_id": trainer_id, "price": str(price)},
        )
        return OperationResult.ok("Slot created", entity_id=slot.id)

    @operation
    def delete_slot(self, slot_id: str, actor: Actor) -> OperationResult:
        with self.locks.slot(slot_id):
            slot = self._require(slot_id)
            if not (actor.is_admin or slot.trainer_id == actor.id):
                raise AuthorizationError("Only the trainer or an administrator may delete this slot")
            if slot.is_booked:
                raise StateConflictError("Booked slots cannot be deleted")
            self.store.remove_slot(slot_id)
        logger.info("Slot deleted", extra={"slot_id": slot_id, "actor_id": actor.id})
        return OperationResult.ok("Slot deleted", entity_id=slot_id)

    def available_slots(self, trainer_id: str) -> list[TimeSlot]:
        earliest = self.clock.now() + MINIMUM_LEAD_TIME
        slots = [
            slot.model_copy(deep=True)
            for slot in self.store.all_slots()
            if slot.trainer_id == trainer_id and not slot.is_booked and slot.start_time >= earliest
        ]
        return sorted(slots, key=lambda slot: slot.start_time)

    def slots_for_trainer(self, trainer_id: str) -> list[TimeSlot]:
        slots = [
            slot.model_copy(deep=True)
            for slot in self.store.all_slots()
            if slot.trainer_id == trainer_id
        ]
        return sorted(slots, key=lambda slot: slot.start_time)

    @operation
    def book_slot(self, slot_id: str, actor: Actor, notes: str = "") -> OperationResult:
        if self._lifecycle is None:
            raise RuntimeError("Slot registry is not bound to a lifecycle manager")
        with self.locks.slot(slot_id):
            slot = self._require(slot_id)
            if actor.id == slot.trainer_id:
                raise AuthorizationError("Trainers cannot book their own slots")
            if slot.is_booked:
                raise StateConflictError("This slot is already booked")
            if slot.start_time < self.clock.now() + MINIMUM_LEAD_TIME:
                raise LeadTimeViolation(
                    "Private lessons must be booked at least 24 hours in advance. "
                    "This slot has expired."
                )
            booking = self._lifecycle.create_from_slot(slot, actor, notes)
            slot.bind(actor.id, booking.id)
            self.store.changed()
        logger.info(
            "Slot booked",
            extra={"slot_id": slot_id, "booking_id": booking.id, "user_id": actor.id},
        )
        self._lifecycle.announce_created(booking)
        return OperationResult.ok(
            f"Slot booked! Booking number: {booking.booking_number}",
            booking_number=booking.booking_number,
            entity_id=booking.id,
        )

    def release(self, slot_id: str, booking_id: str) -> bool:
        """Unbind the slot from ``booking_id``; a no-op for any other binding."""
        with self.locks.slot(slot_id):
            slot = self.store.slots.get(slot_id)
            if slot is None or not slot.is_booked or slot.booking_id != booking_id:
                return False
            slot.release()
            self.store.changed()
        logger.info("Slot released", extra={"slot_id": slot_id, "booking_id": booking_id})
        return True
