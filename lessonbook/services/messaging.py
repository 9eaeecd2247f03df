from __future__ import annotations

import logging

from ..core.clock import Clock
from ..core.errors import AuthorizationError, NotFoundError, ValidationError
from ..core.locks import EntityLocks
from ..domain import Actor, Booking, Message
from .results import OperationResult, operation
from .state_store import StateStore

logger = logging.getLogger(__name__)


class MessagingThread:
    """Append-only conversation attached to each booking, kept after it ends."""

    def __init__(self, store: StateStore, locks: EntityLocks, clock: Clock) -> None:
        self.store = store
        self.locks = locks
        self.clock = clock

    def _require_participant(self, booking_id: str, actor: Actor) -> Booking:
        booking = self.store.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        if not (actor.is_admin or booking.is_participant(actor.id)):
            raise AuthorizationError("Only participants can access this conversation")
        return booking

    @operation
    def post(self, booking_id: str, actor: Actor, content: str) -> OperationResult:
        content = content.strip()
        if not content:
            raise ValidationError("Message must not be empty")
        with self.locks.booking(booking_id):
            booking = self._require_participant(booking_id, actor)
            now = self.clock.now()
            message = Message(
                sender_id=actor.id, sender_name=actor.name, content=content, timestamp=now
            )
            booking.messages.append(message)
            booking.touch(now)
            self.store.changed()
        logger.info(
            "Message posted",
            extra={"booking_id": booking_id, "sender_id": actor.id, "message_id": message.id},
        )
        return OperationResult.ok(
            "Message sent", booking_number=booking.booking_number, entity_id=message.id
        )

    def thread(self, booking_id: str, actor: Actor) -> list[Message]:
        with self.locks.booking(booking_id):
            booking = self._require_participant(booking_id, actor)
            return [message.model_copy() for message in booking.messages]

    @operation
    def mark_read(self, booking_id: str, actor: Actor) -> OperationResult:
        with self.locks.booking(booking_id):
            booking = self._require_participant(booking_id, actor)
            unread = [
                message
                for message in booking.messages
                if not message.is_read and message.sender_id != actor.id
            ]
            for message in unread:
                message.is_read = True
            if unread:
                self.store.changed()
        return OperationResult.ok(f"{len(unread)} messages marked as read", entity_id=booking_id)

    def unread_count(self, booking_id: str, actor: Actor) -> int:
        return sum(
            1
            for message in self.thread(booking_id, actor)
            if not message.is_read and message.sender_id != actor.id
        )
