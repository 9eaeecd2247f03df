from decimal import Decimal
from pydantic import BaseModel


class TrainerSettingsUpdate(BaseModel):
    is_enabled: bool = True
    price_per_hour: Decimal
    min_duration: int = 30
    max_duration: int = 120
    description: str = ""


class TrainerPriceUpdate(BaseModel):
    price_per_hour: Decimal


class TrainerSettings(TrainerSettingsUpdate):
    trainer_id: str

    class Config:
        from_attributes = True


class TrainerRevenue(BaseModel):
    trainer_id: str
    total: Decimal
    paid_bookings: int
