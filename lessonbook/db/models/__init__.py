from .time_slot import TimeSlotRecord
from .booking import BookingRecord, BookingMessageRecord
from .trainer_settings import TrainerSettingsRecord
