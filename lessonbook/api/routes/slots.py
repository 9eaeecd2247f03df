from typing import Annotated

from fastapi import APIRouter, Depends

from ...api import deps
from ...db import schemas
from ...domain import Actor
from ...services.container import ServiceContainer

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("", response_model=list[schemas.TimeSlot])
def list_slots(
    trainer_id: str,
    include_booked: bool = False,
    container: ServiceContainer = Depends(deps.get_container),
):
    if include_booked:
        return container.slots.slots_for_trainer(trainer_id)
    return container.slots.available_slots(trainer_id)


@router.post("", response_model=schemas.TimeSlot)
def create_slot(
    payload: schemas.TimeSlotCreate,
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
    container: ServiceContainer = Depends(deps.get_container),
):
    result = deps.unwrap(
        container.slots.create_slot(
            actor, payload.trainer_id, payload.start_time, payload.duration_minutes
        )
    )
    return container.slots.get(result.entity_id)


@router.delete("/{slot_id}", response_model=schemas.OperationOutcome)
def delete_slot(
    slot_id: str,
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
    container: ServiceContainer = Depends(deps.get_container),
):
    return deps.unwrap(container.slots.delete_slot(slot_id, actor))


@router.post("/{slot_id}/book", response_model=schemas.OperationOutcome)
def book_slot(
    slot_id: str,
    payload: schemas.SlotBook,
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
    container: ServiceContainer = Depends(deps.get_container),
):
    return deps.unwrap(container.slots.book_slot(slot_id, actor, payload.notes))
