from __future__ import annotations

from datetime import datetime
from decimal import Decimal
import logging
import threading

from ..core.clock import Clock, ensure_aware
from ..core.constants import (
    CALL_START_LEAD,
    CANCELLATION_WINDOW,
    MINIMUM_LEAD_TIME,
    REMINDER_HORIZON,
)
from ..core.errors import (
    AuthorizationError,
    LeadTimeViolation,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from ..core.locks import EntityLocks
from ..domain import (
    CALLABLE_STATUSES,
    SELF_CANCELLABLE_STATUSES,
    Actor,
    Booking,
    BookingStatus,
    Message,
    PaymentStatus,
    TimeSlot,
    UserRole,
    generate_booking_number,
    payment_deadline_for,
)
from . import notification_service
from .directory import UserDirectory
from .notification_service import Notification, NotificationPort
from .payment_service import PaymentService
from .payments import PaymentOrder
from .results import OperationResult, operation
from .slot_registry import TimeSlotRegistry
from .state_store import StateStore
from .trainer_settings_service import TrainerSettingsService

logger = logging.getLogger(__name__)


def format_time_remaining(deadline: datetime, now: datetime) -> str:
    remaining = (deadline - now).total_seconds()
    if remaining <= 0:
        return "expired"
    hours = int(remaining // 3600)
    minutes = int((remaining % 3600) // 60)
    if hours > 24:
        days = hours // 24
        return f"{days} day{'' if days == 1 else 's'}"
    if hours > 0:
        return f"{hours} h {minutes} min"
    return f"{minutes} minutes"


class BookingLifecycleManager:
    """State machine for private-lesson bookings.

    Every mutating operation validates the actor and the current state under
    the booking's lock before touching anything, and reports the outcome as an
    :class:`OperationResult`. Notifications are sent after the lock is released
    and never influence the outcome.
    """

    def __init__(
        self,
        store: StateStore,
        locks: EntityLocks,
        clock: Clock,
        slots: TimeSlotRegistry,
        payments: PaymentService,
        notifier: NotificationPort,
        directory: UserDirectory,
        trainer_settings: TrainerSettingsService,
    ) -> None:
        self.store = store
        self.locks = locks
        self.clock = clock
        self.slots = slots
        self.payments = payments
        self.notifier = notifier
        self.directory = directory
        self.trainer_settings = trainer_settings
        self._numbers_lock = threading.Lock()
        slots.bind_lifecycle(self)

    # -- helpers -----------------------------------------------------------

    def _require(self, booking_id: str) -> Booking:
        booking = self.store.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    def _notify(self, notification: Notification) -> None:
        try:
            self.notifier.send(notification)
        except Exception:
            logger.exception(
                "Notification delivery failed",
                extra={"recipient_id": notification.recipient_id, "title": notification.title},
            )

    @staticmethod
    def _require_trainer_or_admin(booking: Booking, actor: Actor) -> None:
        if not (actor.is_admin or booking.trainer_id == actor.id):
            raise AuthorizationError("Only the trainer or an administrator may do this")

    @staticmethod
    def _require_participant(booking: Booking, actor: Actor) -> None:
        if not (actor.is_admin or booking.is_participant(actor.id)):
            raise AuthorizationError("You can only manage your own bookings")

    def _trainer_profile(self, trainer_id: str, name_hint: str = "") -> Actor:
        trainer = self.directory.get(trainer_id)
        if trainer is not None:
            return trainer
        return Actor(id=trainer_id, name=name_hint or trainer_id, role=UserRole.trainer)

    @staticmethod
    def _cancelled_by(actor: Actor, by_student: bool) -> str:
        if by_student:
            return "the student"
        return "an administrator" if actor.is_admin else "the trainer"

    def _release_slot(self, booking: Booking) -> None:
        if booking.slot_id:
            self.slots.release(booking.slot_id, booking.id)

    def _add_booking(
        self,
        *,
        trainer: Actor,
        student: Actor,
        requested_date: datetime,
        duration_minutes: int,
        price: Decimal,
        notes: str,
        slot_id: str | None = None,
    ) -> Booking:
        now = self.clock.now()
        with self._numbers_lock:
            taken = self.store.booking_numbers()
            number = generate_booking_number(now.year)
            while number in taken:
                number = generate_booking_number(now.year)
            booking = Booking(
                booking_number=number,
                trainer_id=trainer.id,
                trainer_name=trainer.name,
                user_id=student.id,
                user_name=student.name,
                user_email=student.email,
                slot_id=slot_id,
                requested_date=requested_date,
                duration_minutes=duration_minutes,
                price=price,
                notes=notes,
                trainer_revenue=price,
                platform_fee=Decimal("0"),
                created_at=now,
                updated_at=now,
            )
            self.store.add_booking(booking)
        logger.info(
            "Booking created",
            extra={
                "booking_id": booking.id,
                "booking_number": booking.booking_number,
                "trainer_id": trainer.id,
                "user_id": student.id,
            },
        )
        return booking

    def _cancellation_block_reason(self, booking: Booking, now: datetime) -> str | None:
        if booking.status not in SELF_CANCELLABLE_STATUSES:
            return "This booking can no longer be cancelled"
        remaining = booking.effective_date - now
        if remaining < CANCELLATION_WINDOW:
            hours = max(0, int(remaining.total_seconds() // 3600))
            return (
                "Cancellation is only possible up to 24 hours before the lesson "
                f"({hours} hours remaining)."
            )
        return None

    # -- creation ------------------------------------------------------------

    def create_from_slot(self, slot: TimeSlot, student: Actor, notes: str) -> Booking:
        """Create the pending booking for a slot; caller holds the slot lock."""
        return self._add_booking(
            trainer=self._trainer_profile(slot.trainer_id, slot.trainer_name),
            student=student,
            requested_date=slot.start_time,
            duration_minutes=slot.duration_minutes,
            price=slot.price,
            notes=notes,
            slot_id=slot.id,
        )

    def announce_created(self, booking: Booking) -> None:
        self._notify(
            notification_service.booking_created(
                trainer_id=booking.trainer_id,
                booking_number=booking.booking_number,
                student_name=booking.user_name,
                starts_at=booking.requested_date,
            )
        )

    @operation
    def create_request(
        self,
        actor: Actor,
        trainer_id: str,
        requested_date: datetime,
        duration_minutes: int,
        notes: str = "",
    ) -> OperationResult:
        if actor.id == trainer_id:
            raise AuthorizationError("Trainers cannot book lessons with themselves")
        settings = self.trainer_settings.find(trainer_id)
        if settings is None and self.directory.get(trainer_id) is None:
            raise NotFoundError("Trainer not found")
        if settings is None or not settings.is_enabled:
            raise ValidationError("This trainer does not offer private lessons")
        if not settings.min_duration <= duration_minutes <= settings.max_duration:
            raise ValidationError(
                f"Duration must be between {settings.min_duration} and "
                f"{settings.max_duration} minutes"
            )
        requested_date = ensure_aware(requested_date)
        if requested_date < self.clock.now() + MINIMUM_LEAD_TIME:
            raise LeadTimeViolation(
                "Private lessons must be booked at least 24 hours in advance. "
                "This request has expired."
            )
        booking = self._add_booking(
            trainer=self._trainer_profile(trainer_id),
            student=actor,
            requested_date=requested_date,
            duration_minutes=duration_minutes,
            price=settings.price_for(duration_minutes),
            notes=notes,
        )
        self._notify(
            notification_service.booking_requested(
                trainer_id=trainer_id, student_name=actor.name
            )
        )
        return OperationResult.ok(
            "Request sent! The trainer will get back to you.",
            booking_number=booking.booking_number,
            entity_id=booking.id,
        )

    # -- confirmation & payment ---------------------------------------------

    @operation
    def confirm(
        self,
        booking_id: str,
        actor: Actor,
        confirmed_date: datetime,
        externally_billed: bool = False,
    ) -> OperationResult:
        confirmed_date = ensure_aware(confirmed_date)
        with self.locks.booking(booking_id):
            booking = self._require(booking_id)
            self._require_trainer_or_admin(booking, actor)
            if booking.status != BookingStatus.pending:
                raise StateConflictError("Only pending bookings can be confirmed")
            now = self.clock.now()
            if confirmed_date <= now:
                raise ValidationError("The lesson date must be in the future")
            booking.confirmed_date = confirmed_date
            booking.status = BookingStatus.confirmed
            booking.externally_billed = externally_billed
            booking.touch(now)
            self.store.changed()
            order_request = booking.model_copy()
        logger.info(
            "Booking confirmed",
            extra={"booking_id": booking_id, "externally_billed": externally_billed},
        )
        if externally_billed:
            return OperationResult.ok(
                "Booking confirmed. Payment is handled outside the app.",
                booking_number=order_request.booking_number,
                entity_id=booking_id,
            )
        # Gateway latency must not hold the booking lock.
        order = self.payments.create_order(order_request)
        return self._await_payment(booking_id, confirmed_date, order)

    def _await_payment(
        self, booking_id: str, confirmed_date: datetime, order: PaymentOrder | None
    ) -> OperationResult:
        with self.locks.booking(booking_id):
            booking = self._require(booking_id)
            if booking.status != BookingStatus.confirmed or booking.confirmed_date != confirmed_date:
                logger.warning(
                    "Booking changed while the payment order was created",
                    extra={
                        "booking_id": booking_id,
                        "order_id": order.order_id if order else None,
                    },
                )
                raise StateConflictError(
                    "The booking changed while the payment order was being created"
                )
            deadline = payment_deadline_for(confirmed_date)
            booking.status = BookingStatus.awaiting_payment
            booking.payment_status = PaymentStatus.awaiting_payment
            booking.payment_deadline = deadline
            if order is not None:
                booking.payment_order_id = order.order_id
                booking.payment_link = order.approval_url
            booking.touch(self.clock.now())
            self.store.changed()
            has_link = bool(booking.payment_link)
            student_id, trainer_name = booking.user_id, booking.trainer_name
            number = booking.booking_number
        self._notify(
            notification_service.awaiting_payment(
                student_id=student_id,
                trainer_name=trainer_name,
                deadline=deadline,
                has_link=has_link,
            )
        )
        if has_link:
            message = "Booking confirmed. The payment link was sent to the student."
        else:
            message = (
                "Booking confirmed. No payment link could be created; "
                "the student was asked to arrange payment with the trainer."
            )
        return OperationResult.ok(message, booking_number=number, entity_id=booking_id)

    def _mark_paid(
        self,
        booking_id: str,
        transaction_id: str | None,
        actor: Actor | None = None,
        captured: bool = False,
    ) -> OperationResult:
        with self.locks.booking(booking_id):
            booking = self._require(booking_id)
            if actor is not None:
                self._require_trainer_or_admin(booking, actor)
            if booking.status == BookingStatus.paid and (
                transaction_id is None or booking.payment_transaction_id == transaction_id
            ):
                return OperationResult.ok(
                    "Payment already recorded",
                    booking_number=booking.booking_number,
                    entity_id=booking_id,
                )
            if booking.status != BookingStatus.awaiting_payment:
                if captured:
                    self._record_unpayable_capture(booking, transaction_id)
                    raise StateConflictError(
                        "This booking is no longer awaiting payment; "
                        "the captured payment must be refunded"
                    )
                raise StateConflictError("This booking is not awaiting payment")
            now = self.clock.now()
            booking.status = BookingStatus.paid
            booking.payment_status = PaymentStatus.completed
            booking.paid_at = now
            if transaction_id:
                booking.payment_transaction_id = transaction_id
            booking.touch(now)
            self.store.changed()
            trainer_id, student_name = booking.trainer_id, booking.user_name
            number = booking.booking_number
        logger.info(
            "Booking paid",
            extra={"booking_id": booking_id, "transaction_id": transaction_id},
        )
        self._notify(
            notification_service.payment_received(trainer_id=trainer_id, student_name=student_name)
        )
        return OperationResult.ok("Payment confirmed", booking_number=number, entity_id=booking_id)

    def _record_unpayable_capture(self, booking: Booking, transaction_id: str | None) -> None:
        """Keep a trace of money taken for a booking that can no longer be paid."""
        now = self.clock.now()
        if transaction_id and not booking.payment_transaction_id:
            booking.payment_transaction_id = transaction_id
        booking.needs_manual_refund = True
        booking.messages.append(
            Message.system(
                f"Payment received after the booking was {booking.status.value} - "
                "a refund will be arranged",
                now,
            )
        )
        booking.touch(now)
        self.store.changed()
        logger.warning(
            "Payment captured for a booking that is no longer payable",
            extra={
                "booking_id": booking.id,
                "status": booking.status.value,
                "transaction_id": transaction_id,
            },
        )

    @operation
    def mark_paid(self, booking_id: str, transaction_id: str | None = None) -> OperationResult:
        return self._mark_paid(booking_id, transaction_id)

    @operation
    def handle_payment_return(self, url: str) -> OperationResult:
        booking = self.find_by_order_id(self.payments.order_id_for_return_url(url))
        if booking is None:
            raise NotFoundError("No booking matches this payment")
        if booking.status == BookingStatus.paid:
            return OperationResult.ok(
                "Payment already recorded",
                booking_number=booking.booking_number,
                entity_id=booking.id,
            )
        if booking.status != BookingStatus.awaiting_payment:
            raise StateConflictError("This booking is not awaiting payment")
        # The booking may still change while the provider captures the money.
        capture = self.payments.resolve_return_url(url)
        return self._mark_paid(booking.id, capture.transaction_id, captured=True)

    @operation
    def confirm_manual_payment(
        self, booking_id: str, actor: Actor, transaction_id: str
    ) -> OperationResult:
        return self._mark_paid(booking_id, transaction_id, actor=actor)

    # -- cancellation, rejection, completion ---------------------------------

    @operation
    def cancel(self, booking_id: str, actor: Actor) -> OperationResult:
        with self.locks.booking(booking_id):
            booking = self._require(booking_id)
            self._require_participant(booking, actor)
            now = self.clock.now()
            by_student = actor.id == booking.user_id
            if booking.status == BookingStatus.paid:
                result, notification = self._cancel_paid(booking, actor, by_student, now)
            else:
                result, notification = self._cancel_unpaid(booking, actor, by_student, now)
        logger.info(
            "Booking cancelled",
            extra={
                "booking_id": booking_id,
                "actor_id": actor.id,
                "needs_refund": result.needs_refund,
            },
        )
        if notification is not None:
            self._notify(notification)
        return result

    def _cancel_unpaid(
        self, booking: Booking, actor: Actor, by_student: bool, now: datetime
    ) -> tuple[OperationResult, Notification | None]:
        if booking.status not in SELF_CANCELLABLE_STATUSES:
            raise StateConflictError("This booking can no longer be cancelled")
        if by_student:
            reason = self._cancellation_block_reason(booking, now)
            if reason:
                raise LeadTimeViolation(reason)
        booking.status = BookingStatus.cancelled
        if booking.payment_status == PaymentStatus.awaiting_payment:
            booking.payment_status = PaymentStatus.none
        content = f"Booking cancelled by {self._cancelled_by(actor, by_student)}"
        booking.messages.append(
            Message(sender_id=actor.id, sender_name=actor.name, content=content, timestamp=now)
        )
        booking.touch(now)
        self._release_slot(booking)
        self.store.changed()
        notification = None
        if by_student:
            notification = notification_service.booking_cancelled(
                trainer_id=booking.trainer_id,
                student_name=booking.user_name,
                starts_at=booking.effective_date,
            )
        result = OperationResult.ok(
            "Booking cancelled", booking_number=booking.booking_number, entity_id=booking.id
        )
        return result, notification

    def _cancel_paid(
        self, booking: Booking, actor: Actor, by_student: bool, now: datetime
    ) -> tuple[OperationResult, Notification]:
        booking.status = BookingStatus.cancelled
        booking.payment_status = PaymentStatus.refunded
        booking.needs_manual_refund = True
        reason = f"Cancelled by {self._cancelled_by(actor, by_student)} - a refund will be arranged"
        booking.messages.append(Message.system(reason, now))
        booking.touch(now)
        self._release_slot(booking)
        self.store.changed()
        result = OperationResult.ok(
            "Booking cancelled. The refund must be issued manually.",
            booking_number=booking.booking_number,
            needs_refund=True,
            entity_id=booking.id,
        )
        return result, notification_service.paid_booking_cancelled(student_id=booking.user_id)

    @operation
    def reject(self, booking_id: str, actor: Actor, reason: str = "") -> OperationResult:
        with self.locks.booking(booking_id):
            booking = self._require(booking_id)
            self._require_trainer_or_admin(booking, actor)
            if booking.status != BookingStatus.pending:
                raise StateConflictError("Only pending bookings can be rejected")
            now = self.clock.now()
            booking.status = BookingStatus.rejected
            content = f"Booking rejected: {reason}" if reason.strip() else "Booking rejected"
            booking.messages.append(
                Message(sender_id=actor.id, sender_name=actor.name, content=content, timestamp=now)
            )
            booking.touch(now)
            self._release_slot(booking)
            self.store.changed()
            number = booking.booking_number
        logger.info("Booking rejected", extra={"booking_id": booking_id, "actor_id": actor.id})
        return OperationResult.ok("Booking rejected", booking_number=number, entity_id=booking_id)

    @operation
    def complete(self, booking_id: str, actor: Actor) -> OperationResult:
        with self.locks.booking(booking_id):
            booking = self._require(booking_id)
            self._require_trainer_or_admin(booking, actor)
            if booking.status not in (BookingStatus.confirmed, BookingStatus.paid):
                raise StateConflictError("Only confirmed or paid bookings can be completed")
            booking.status = BookingStatus.completed
            booking.touch(self.clock.now())
            self._release_slot(booking)
            self.store.changed()
            number = booking.booking_number
        logger.info("Booking completed", extra={"booking_id": booking_id})
        return OperationResult.ok("Booking completed", booking_number=number, entity_id=booking_id)

    # -- sweeper hooks -------------------------------------------------------

    def expire(self, booking_id: str) -> bool:
        """Expire an unpaid booking whose deadline has passed; ``False`` if nothing to do."""
        with self.locks.booking(booking_id):
            booking = self.store.bookings.get(booking_id)
            now = self.clock.now()
            if (
                booking is None
                or booking.status != BookingStatus.awaiting_payment
                or booking.payment_deadline is None
                or booking.payment_deadline >= now
            ):
                return False
            booking.status = BookingStatus.expired
            booking.payment_status = PaymentStatus.expired
            booking.messages.append(
                Message.system("Booking cancelled automatically: payment deadline passed", now)
            )
            booking.touch(now)
            self._release_slot(booking)
            self.store.changed()
            student_id = booking.user_id
        logger.info("Booking expired", extra={"booking_id": booking_id})
        self._notify(notification_service.booking_expired(student_id=student_id))
        return True

    def remind_if_due(self, booking_id: str) -> bool:
        """Send the one-time "starting soon" reminder when the lesson is near."""
        with self.locks.booking(booking_id):
            booking = self.store.bookings.get(booking_id)
            now = self.clock.now()
            if (
                booking is None
                or booking.status not in CALLABLE_STATUSES
                or booking.reminder_sent_at is not None
            ):
                return False
            if not now < booking.effective_date <= now + REMINDER_HORIZON:
                return False
            booking.reminder_sent_at = now
            self.store.changed()
            trainer_id, student_name = booking.trainer_id, booking.user_name
        self._notify(
            notification_service.lesson_starting_soon(
                trainer_id=trainer_id, student_name=student_name
            )
        )
        return True

    # -- queries -------------------------------------------------------------

    def get(self, booking_id: str) -> Booking | None:
        booking = self.store.bookings.get(booking_id)
        return booking.model_copy(deep=True) if booking else None

    def by_number(self, booking_number: str) -> Booking | None:
        for booking in self.store.all_bookings():
            if booking.booking_number == booking_number:
                return booking.model_copy(deep=True)
        return None

    def find_by_order_id(self, order_id: str) -> Booking | None:
        for booking in self.store.all_bookings():
            if booking.payment_order_id == order_id:
                return booking.model_copy(deep=True)
        return None

    def _select(self, predicate) -> list[Booking]:
        bookings = [b.model_copy(deep=True) for b in self.store.all_bookings() if predicate(b)]
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    def for_user(self, user_id: str) -> list[Booking]:
        return self._select(lambda b: b.user_id == user_id)

    def for_trainer(self, trainer_id: str) -> list[Booking]:
        return self._select(lambda b: b.trainer_id == trainer_id)

    def pending_for_trainer(self, trainer_id: str) -> list[Booking]:
        return self._select(
            lambda b: b.trainer_id == trainer_id and b.status == BookingStatus.pending
        )

    def paid_for_trainer(self, trainer_id: str) -> list[Booking]:
        bookings = [
            b.model_copy(deep=True)
            for b in self.store.all_bookings()
            if b.trainer_id == trainer_id and b.payment_status == PaymentStatus.completed
        ]
        return sorted(bookings, key=lambda b: b.paid_at or b.created_at, reverse=True)

    def total_revenue_for_trainer(self, trainer_id: str) -> Decimal:
        return sum(
            (b.trainer_revenue or Decimal("0") for b in self.paid_for_trainer(trainer_id)),
            Decimal("0"),
        )

    def active_bookings(self) -> list[Booking]:
        return [b for b in self.store.all_bookings() if b.is_active]

    def payment_link(self, booking_id: str) -> str | None:
        booking = self.store.bookings.get(booking_id)
        return booking.payment_link if booking else None

    def can_cancel(self, booking: Booking) -> tuple[bool, str | None]:
        reason = self._cancellation_block_reason(booking, self.clock.now())
        return reason is None, reason

    def time_remaining(self, booking_id: str) -> str | None:
        booking = self.store.bookings.get(booking_id)
        if booking is None or booking.payment_deadline is None:
            return None
        return format_time_remaining(booking.payment_deadline, self.clock.now())

    def can_start_call(self, booking: Booking, actor: Actor) -> bool:
        if not (actor.is_admin or booking.trainer_id == actor.id):
            return False
        if booking.status not in CALLABLE_STATUSES:
            return False
        now = self.clock.now()
        return booking.effective_date - CALL_START_LEAD <= now <= booking.end_date

    def can_join_call(self, booking: Booking, actor: Actor) -> bool:
        return booking.user_id == actor.id and booking.status in CALLABLE_STATUSES
