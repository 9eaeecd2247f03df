from pydantic import BaseModel, Field

from .booking import Booking
from .slot import TimeSlot
from .trainer import TrainerSettings


class StateSnapshot(BaseModel):
    """Whole-collection image of the booking state, as synced to storage."""

    slots: list[TimeSlot] = Field(default_factory=list)
    bookings: list[Booking] = Field(default_factory=list)
    trainer_settings: list[TrainerSettings] = Field(default_factory=list)
