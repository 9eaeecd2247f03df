from decimal import Decimal

from pydantic import BaseModel

from ..core.constants import DEFAULT_MAX_DURATION, DEFAULT_MIN_DURATION


class TrainerSettings(BaseModel):
    trainer_id: str
    is_enabled: bool = True
    price_per_hour: Decimal = Decimal("50")
    min_duration: int = DEFAULT_MIN_DURATION
    max_duration: int = DEFAULT_MAX_DURATION
    description: str = ""

    def price_for(self, duration_minutes: int) -> Decimal:
        return (self.price_per_hour * Decimal(duration_minutes) / Decimal(60)).quantize(
            Decimal("0.01")
        )
