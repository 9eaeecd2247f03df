from .actor import Actor, UserRole
from .message import Message
from .slot import TimeSlot
from .booking import (
    Booking,
    BookingStatus,
    PaymentStatus,
    TERMINAL_STATUSES,
    SELF_CANCELLABLE_STATUSES,
    CALLABLE_STATUSES,
    generate_booking_number,
    payment_deadline_for,
)
from .trainer import TrainerSettings
from .snapshot import StateSnapshot
