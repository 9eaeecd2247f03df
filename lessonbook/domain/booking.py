from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum as PyEnum
import random
import uuid

from pydantic import BaseModel, Field

from ..core.constants import BOOKING_NUMBER_PREFIX, PAYMENT_DEADLINE_OFFSET
from .message import Message


class BookingStatus(str, PyEnum):
    pending = "pending"
    confirmed = "confirmed"
    awaiting_payment = "awaiting_payment"
    paid = "paid"
    completed = "completed"
    cancelled = "cancelled"
    rejected = "rejected"
    expired = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        BookingStatus.completed,
        BookingStatus.cancelled,
        BookingStatus.rejected,
        BookingStatus.expired,
    }
)

SELF_CANCELLABLE_STATUSES = frozenset(
    {BookingStatus.pending, BookingStatus.confirmed, BookingStatus.awaiting_payment}
)

CALLABLE_STATUSES = frozenset({BookingStatus.confirmed, BookingStatus.paid})


class PaymentStatus(str, PyEnum):
    none = "none"
    awaiting_payment = "awaiting_payment"
    completed = "completed"
    refunded = "refunded"
    expired = "expired"


def generate_booking_number(year: int) -> str:
    return f"{BOOKING_NUMBER_PREFIX}-{year}-{random.randint(1, 99999):05d}"


def payment_deadline_for(confirmed_date: datetime) -> datetime:
    return confirmed_date - PAYMENT_DEADLINE_OFFSET


class Booking(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    booking_number: str
    trainer_id: str
    trainer_name: str
    user_id: str
    user_name: str
    user_email: str = ""
    slot_id: str | None = None
    requested_date: datetime
    confirmed_date: datetime | None = None
    duration_minutes: int
    price: Decimal
    notes: str = ""
    status: BookingStatus = BookingStatus.pending
    payment_status: PaymentStatus = PaymentStatus.none
    payment_deadline: datetime | None = None
    payment_order_id: str | None = None
    payment_transaction_id: str | None = None
    payment_link: str | None = None
    paid_at: datetime | None = None
    needs_manual_refund: bool = False
    externally_billed: bool = False
    reminder_sent_at: datetime | None = None
    trainer_revenue: Decimal | None = None
    platform_fee: Decimal | None = None
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @property
    def effective_date(self) -> datetime:
        return self.confirmed_date or self.requested_date

    @property
    def end_date(self) -> datetime:
        return self.effective_date + timedelta(minutes=self.duration_minutes)

    @property
    def is_active(self) -> bool:
        return not self.status.is_terminal

    @property
    def payment_description(self) -> str:
        return (
            f"Private lesson {self.booking_number} - {self.trainer_name} "
            f"({self.duration_minutes} min)"
        )

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.user_id, self.trainer_id)

    def touch(self, now: datetime) -> None:
        self.updated_at = now
