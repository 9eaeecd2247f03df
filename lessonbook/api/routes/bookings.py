from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from ...api import deps
from ...core.errors import BookingError
from ...db import schemas
from ...domain import Actor, Booking
from ...services.container import ServiceContainer

router = APIRouter(prefix="/bookings", tags=["bookings"])

CurrentActor = Annotated[Actor, Depends(deps.get_current_actor)]


def _visible_booking(container: ServiceContainer, booking_id: str, actor: Actor) -> Booking:
    booking = container.bookings.get(booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    if not (actor.is_admin or booking.is_participant(actor.id)):
        raise HTTPException(status_code=403, detail="Forbidden")
    return booking


@router.get("", response_model=list[schemas.Booking])
def list_my_bookings(actor: CurrentActor, container: ServiceContainer = Depends(deps.get_container)):
    if actor.is_trainer:
        return container.bookings.for_trainer(actor.id)
    return container.bookings.for_user(actor.id)


@router.get("/pending", response_model=list[schemas.Booking])
def list_pending(actor: CurrentActor, container: ServiceContainer = Depends(deps.get_container)):
    return container.bookings.pending_for_trainer(actor.id)


@router.get("/by-number/{booking_number}", response_model=schemas.Booking)
def get_by_number(
    booking_number: str,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    booking = container.bookings.by_number(booking_number)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return _visible_booking(container, booking.id, actor)


@router.post("/requests", response_model=schemas.OperationOutcome)
def create_request(
    payload: schemas.BookingRequestCreate,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    return deps.unwrap(
        container.bookings.create_request(
            actor,
            payload.trainer_id,
            payload.requested_date,
            payload.duration_minutes,
            payload.notes,
        )
    )


@router.get("/{booking_id}", response_model=schemas.Booking)
def get_booking(
    booking_id: str,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    return _visible_booking(container, booking_id, actor)


@router.post("/{booking_id}/confirm", response_model=schemas.OperationOutcome)
def confirm_booking(
    booking_id: str,
    payload: schemas.BookingConfirm,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    return deps.unwrap(
        container.bookings.confirm(
            booking_id, actor, payload.confirmed_date, payload.externally_billed
        )
    )


@router.post("/{booking_id}/reject", response_model=schemas.OperationOutcome)
def reject_booking(
    booking_id: str,
    payload: schemas.BookingReject,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    return deps.unwrap(container.bookings.reject(booking_id, actor, payload.reason))


@router.post("/{booking_id}/cancel", response_model=schemas.OperationOutcome)
def cancel_booking(
    booking_id: str,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    return deps.unwrap(container.bookings.cancel(booking_id, actor))


@router.post("/{booking_id}/complete", response_model=schemas.OperationOutcome)
def complete_booking(
    booking_id: str,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    return deps.unwrap(container.bookings.complete(booking_id, actor))


@router.post("/{booking_id}/manual-payment", response_model=schemas.OperationOutcome)
def confirm_manual_payment(
    booking_id: str,
    payload: schemas.ManualPaymentConfirm,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    return deps.unwrap(
        container.bookings.confirm_manual_payment(booking_id, actor, payload.transaction_id)
    )


@router.get("/{booking_id}/payment", response_model=schemas.PaymentInfo)
def payment_info(
    booking_id: str,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    booking = _visible_booking(container, booking_id, actor)
    return schemas.PaymentInfo(
        payment_link=container.bookings.payment_link(booking_id),
        payment_deadline=booking.payment_deadline,
        time_remaining=container.bookings.time_remaining(booking_id),
    )


@router.get("/{booking_id}/cancellation")
def cancellation_policy(
    booking_id: str,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    booking = _visible_booking(container, booking_id, actor)
    allowed, reason = container.bookings.can_cancel(booking)
    return {"allowed": allowed, "reason": reason}


@router.get("/{booking_id}/call", response_model=schemas.CallAccess)
def call_access(
    booking_id: str,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    booking = _visible_booking(container, booking_id, actor)
    return schemas.CallAccess(
        can_start=container.bookings.can_start_call(booking, actor),
        can_join=container.bookings.can_join_call(booking, actor),
    )


@router.get("/{booking_id}/messages", response_model=list[schemas.Message])
def list_messages(
    booking_id: str,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    try:
        return container.messaging.thread(booking_id, actor)
    except BookingError as exc:
        raise deps.http_error(exc, str(exc)) from exc


@router.post("/{booking_id}/messages", response_model=schemas.OperationOutcome)
def post_message(
    booking_id: str,
    payload: schemas.MessageCreate,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    return deps.unwrap(container.messaging.post(booking_id, actor, payload.content))


@router.post("/{booking_id}/messages/read", response_model=schemas.OperationOutcome)
def mark_messages_read(
    booking_id: str,
    actor: CurrentActor,
    container: ServiceContainer = Depends(deps.get_container),
):
    return deps.unwrap(container.messaging.mark_read(booking_id, actor))
