from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class TimeSlotCreate(BaseModel):
    trainer_id: str
    start_time: datetime
    duration_minutes: int = Field(gt=0)


class SlotBook(BaseModel):
    notes: str = ""


class TimeSlot(BaseModel):
    id: str
    trainer_id: str
    trainer_name: str = ""
    start_time: datetime
    duration_minutes: int
    price: Decimal
    is_booked: bool
    booked_by_user_id: str | None = None
    booking_id: str | None = None

    class Config:
        from_attributes = True
