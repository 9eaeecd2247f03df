from .slot import TimeSlot, TimeSlotCreate, SlotBook
from .booking import (
    Booking,
    BookingConfirm,
    BookingReject,
    BookingRequestCreate,
    CallAccess,
    ManualPaymentConfirm,
    OperationOutcome,
    PaymentInfo,
)
from .message import Message, MessageCreate
from .trainer import TrainerPriceUpdate, TrainerRevenue, TrainerSettings, TrainerSettingsUpdate
from .payment import PaymentReturn
