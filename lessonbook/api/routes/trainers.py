from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from ...api import deps
from ...db import schemas
from ...domain import Actor, UserRole
from ...services.container import ServiceContainer

router = APIRouter(prefix="/trainers", tags=["trainers"])


@router.get("", response_model=list[schemas.TrainerSettings])
def list_trainers(container: ServiceContainer = Depends(deps.get_container)):
    return [
        container.trainer_settings.get(trainer_id)
        for trainer_id in container.trainer_settings.enabled_trainer_ids()
    ]


@router.get("/{trainer_id}/settings", response_model=schemas.TrainerSettings)
def get_trainer_settings(trainer_id: str, container: ServiceContainer = Depends(deps.get_container)):
    return container.trainer_settings.get(trainer_id)


@router.put("/{trainer_id}/settings", response_model=schemas.TrainerSettings)
def update_trainer_settings(
    trainer_id: str,
    payload: schemas.TrainerSettingsUpdate,
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
    container: ServiceContainer = Depends(deps.get_container),
):
    deps.unwrap(container.trainer_settings.update(actor, trainer_id, **payload.model_dump()))
    return container.trainer_settings.get(trainer_id)


@router.put("/{trainer_id}/price", response_model=schemas.TrainerSettings)
def set_trainer_price(
    trainer_id: str,
    payload: schemas.TrainerPriceUpdate,
    actor: Annotated[Actor, Depends(deps.require_roles(UserRole.admin))],
    container: ServiceContainer = Depends(deps.get_container),
):
    deps.unwrap(container.trainer_settings.set_price(actor, trainer_id, payload.price_per_hour))
    return container.trainer_settings.get(trainer_id)


@router.get("/{trainer_id}/revenue", response_model=schemas.TrainerRevenue)
def trainer_revenue(
    trainer_id: str,
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
    container: ServiceContainer = Depends(deps.get_container),
):
    if not (actor.is_admin or actor.id == trainer_id):
        raise HTTPException(status_code=403, detail="Forbidden")
    return schemas.TrainerRevenue(
        trainer_id=trainer_id,
        total=container.bookings.total_revenue_for_trainer(trainer_id),
        paid_bookings=len(container.bookings.paid_for_trainer(trainer_id)),
    )
