from datetime import timedelta
from decimal import Decimal
from concurrent.futures import ThreadPoolExecutor
import threading

import pytest

from lessonbook.core.errors import AuthorizationError, LeadTimeViolation, StateConflictError
from lessonbook.domain import Actor, BookingStatus
from lessonbook.services.container import build_container
from lessonbook.services.directory import InMemoryUserDirectory


def test_create_slot_prices_from_trainer_rate(container, make_slot):
    slot = container.slots.get(make_slot(duration=90))
    assert slot.price == Decimal("90.00")
    assert slot.is_booked is False


def test_create_slot_uses_default_rate_without_settings(container, admin, clock):
    result = container.slots.create_slot(admin, "trainer-x", clock.now() + timedelta(days=2), 30)
    assert result.success
    assert container.slots.get(result.entity_id).price == Decimal("25.00")


def test_student_cannot_create_slot(container, student, trainer, clock):
    result = container.slots.create_slot(student, trainer.id, clock.now() + timedelta(days=2), 60)
    assert not result.success
    assert isinstance(result.error, AuthorizationError)


def test_book_slot_creates_pending_booking(container, make_slot, student, trainer, notifier):
    slot_id = make_slot()
    result = container.slots.book_slot(slot_id, student, "first lesson")
    assert result.success
    assert result.message == f"Slot booked! Booking number: {result.booking_number}"

    slot = container.slots.get(slot_id)
    booking = container.bookings.get(result.entity_id)
    assert slot.is_booked and slot.booked_by_user_id == student.id
    assert slot.booking_id == booking.id
    assert booking.status == BookingStatus.pending
    assert booking.requested_date == slot.start_time
    assert booking.price == slot.price
    assert booking.notes == "first lesson"
    assert notifier.titles_for(trainer.id) == [f"New booking {booking.booking_number}"]


def test_book_slot_twice_conflicts(container, make_slot, student, other_student):
    slot_id = make_slot()
    assert container.slots.book_slot(slot_id, student).success
    second = container.slots.book_slot(slot_id, other_student)
    assert not second.success
    assert isinstance(second.error, StateConflictError)
    assert second.message == "This slot is already booked"


def test_book_slot_inside_lead_time_is_rejected(container, make_slot, student):
    slot_id = make_slot(starts_in=timedelta(hours=23, minutes=59))
    result = container.slots.book_slot(slot_id, student)
    assert not result.success
    assert isinstance(result.error, LeadTimeViolation)
    assert container.slots.get(slot_id).is_booked is False


def test_available_slots_hide_booked_and_near_slots(container, make_slot, student, trainer):
    later = make_slot(starts_in=timedelta(days=5))
    sooner = make_slot(starts_in=timedelta(days=2))
    make_slot(starts_in=timedelta(hours=5))
    booked = make_slot(starts_in=timedelta(days=4))
    container.slots.book_slot(booked, student)

    available = [slot.id for slot in container.slots.available_slots(trainer.id)]
    assert available == [sooner, later]
    assert len(container.slots.slots_for_trainer(trainer.id)) == 4


def test_delete_booked_slot_conflicts(container, make_slot, student, trainer):
    slot_id = make_slot()
    container.slots.book_slot(slot_id, student)
    result = container.slots.delete_slot(slot_id, trainer)
    assert isinstance(result.error, StateConflictError)


def test_delete_slot_requires_owner(container, make_slot, other_student, admin):
    slot_id = make_slot()
    assert isinstance(container.slots.delete_slot(slot_id, other_student).error, AuthorizationError)
    assert container.slots.delete_slot(slot_id, admin).success
    assert container.slots.get(slot_id) is None


def test_release_ignores_foreign_booking(container, make_slot, student):
    slot_id = make_slot()
    result = container.slots.book_slot(slot_id, student)
    assert container.slots.release(slot_id, "someone-else") is False
    assert container.slots.get(slot_id).is_booked
    assert container.slots.release(slot_id, result.entity_id) is True
    assert container.slots.release(slot_id, result.entity_id) is False


def test_concurrent_booking_has_single_winner(container, make_slot, directory):
    slot_id = make_slot()
    students = [Actor(id=f"s-{i}", name=f"Student {i}") for i in range(8)]
    for actor in students:
        directory.upsert(actor)
    barrier = threading.Barrier(len(students))

    def attempt(actor):
        barrier.wait()
        return container.slots.book_slot(slot_id, actor)

    with ThreadPoolExecutor(max_workers=len(students)) as pool:
        results = list(pool.map(attempt, students))

    winners = [r for r in results if r.success]
    assert len(winners) == 1
    assert all(isinstance(r.error, StateConflictError) for r in results if not r.success)
    active = [b for b in container.bookings.active_bookings() if b.slot_id == slot_id]
    assert len(active) == 1
    assert container.slots.get(slot_id).booking_id == winners[0].entity_id


@pytest.mark.parametrize(
    "starts_in, allowed",
    [(timedelta(hours=24), True), (timedelta(hours=24, seconds=-1), False)],
)
def test_book_slot_lead_time_boundary(container, make_slot, student, starts_in, allowed):
    slot_id = make_slot(starts_in=starts_in)
    result = container.slots.book_slot(slot_id, student)
    assert result.success is allowed
    if not allowed:
        assert isinstance(result.error, LeadTimeViolation)
    assert container.slots.get(slot_id).is_booked is allowed


def test_trainer_cannot_book_own_slot(container, make_slot, trainer):
    slot_id = make_slot()
    result = container.slots.book_slot(slot_id, trainer)
    assert isinstance(result.error, AuthorizationError)
    assert not container.slots.get(slot_id).is_booked


def test_create_slot_records_trainer_name(container, make_slot, trainer):
    assert container.slots.get(make_slot()).trainer_name == trainer.name


def test_book_slot_without_trainer_in_directory(settings, clock, gateway, notifier, student, admin):
    services = build_container(
        settings,
        clock=clock,
        gateway=gateway,
        notifier=notifier,
        directory=InMemoryUserDirectory([student, admin]),
    )
    try:
        created = services.slots.create_slot(admin, "trainer-1", clock.now() + timedelta(days=3), 60)
        result = services.slots.book_slot(created.entity_id, student)

        assert result.success, result.message
        booking = services.bookings.get(result.entity_id)
        assert booking.trainer_id == "trainer-1"
        assert booking.trainer_name == "trainer-1"
        assert booking.status == BookingStatus.pending
    finally:
        services.close()


def test_book_slot_uses_trainer_name_stored_on_slot(
    container, make_slot, settings, clock, gateway, notifier, trainer, student
):
    slot_id = make_slot()
    _, snapshot = container.store.snapshot()
    restarted = build_container(
        settings,
        clock=clock,
        gateway=gateway,
        notifier=notifier,
        directory=InMemoryUserDirectory([student]),
    )
    try:
        restarted.store.restore(snapshot)

        result = restarted.slots.book_slot(slot_id, student)

        assert result.success, result.message
        assert restarted.bookings.get(result.entity_id).trainer_name == trainer.name
    finally:
        restarted.close()
