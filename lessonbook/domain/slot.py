from datetime import datetime
from decimal import Decimal
import uuid

from pydantic import BaseModel, Field


class TimeSlot(BaseModel):
    """A bookable window published by a trainer."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    trainer_id: str
    trainer_name: str = ""
    start_time: datetime
    duration_minutes: int
    price: Decimal
    is_booked: bool = False
    booked_by_user_id: str | None = None
    booking_id: str | None = None
    created_at: datetime | None = None

    def bind(self, user_id: str, booking_id: str) -> None:
        self.is_booked = True
        self.booked_by_user_id = user_id
        self.booking_id = booking_id

    def release(self) -> None:
        self.is_booked = False
        self.booked_by_user_id = None
        self.booking_id = None
