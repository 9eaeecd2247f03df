from __future__ import annotations

from decimal import Decimal

from ..core.errors import AuthorizationError, ValidationError
from ..domain import Actor, TrainerSettings
from .results import OperationResult, operation
from .state_store import StateStore


class TrainerSettingsService:
    def __init__(self, store: StateStore, default_hourly_rate: Decimal = Decimal("50")) -> None:
        self.store = store
        self.default_hourly_rate = default_hourly_rate

    def get(self, trainer_id: str) -> TrainerSettings:
        stored = self.store.trainer_settings.get(trainer_id)
        if stored is not None:
            return stored
        return TrainerSettings(trainer_id=trainer_id, price_per_hour=self.default_hourly_rate)

    def find(self, trainer_id: str) -> TrainerSettings | None:
        return self.store.trainer_settings.get(trainer_id)

    def enabled_trainer_ids(self) -> list[str]:
        return [
            settings.trainer_id
            for settings in self.store.trainer_settings.values()
            if settings.is_enabled
        ]

    @operation
    def update(
        self,
        actor: Actor,
        trainer_id: str,
        *,
        is_enabled: bool,
        price_per_hour: Decimal,
        min_duration: int,
        max_duration: int,
        description: str = "",
    ) -> OperationResult:
        if not (actor.is_admin or actor.id == trainer_id):
            raise AuthorizationError("Only the trainer or an administrator may change these settings")
        if price_per_hour < 0:
            raise ValidationError("Hourly rate must not be negative")
        if min_duration <= 0 or max_duration < min_duration:
            raise ValidationError("Duration limits are invalid")
        settings = self.get(trainer_id).model_copy(
            update={
                "is_enabled": is_enabled,
                "price_per_hour": price_per_hour,
                "min_duration": min_duration,
                "max_duration": max_duration,
                "description": description,
            }
        )
        self.store.put_trainer_settings(settings)
        return OperationResult.ok("Settings saved", entity_id=trainer_id)

    @operation
    def set_price(self, actor: Actor, trainer_id: str, price_per_hour: Decimal) -> OperationResult:
        if not actor.is_admin:
            raise AuthorizationError("Only an administrator may set trainer prices")
        if price_per_hour < 0:
            raise ValidationError("Hourly rate must not be negative")
        settings = self.get(trainer_id).model_copy(update={"price_per_hour": price_per_hour})
        self.store.put_trainer_settings(settings)
        return OperationResult.ok("Price updated", entity_id=trainer_id)
