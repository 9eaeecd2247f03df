from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel

from ...domain import BookingStatus, PaymentStatus


class BookingRequestCreate(BaseModel):
    trainer_id: str
    requested_date: datetime
    duration_minutes: int
    notes: str = ""


class BookingConfirm(BaseModel):
    confirmed_date: datetime
    externally_billed: bool = False


class BookingReject(BaseModel):
    reason: str = ""


class ManualPaymentConfirm(BaseModel):
    transaction_id: str


class Booking(BaseModel):
    id: str
    booking_number: str
    trainer_id: str
    trainer_name: str
    user_id: str
    user_name: str
    slot_id: str | None = None
    requested_date: datetime
    confirmed_date: datetime | None = None
    duration_minutes: int
    price: Decimal
    notes: str = ""
    status: BookingStatus
    payment_status: PaymentStatus
    payment_deadline: datetime | None = None
    payment_link: str | None = None
    paid_at: datetime | None = None
    needs_manual_refund: bool = False
    externally_billed: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OperationOutcome(BaseModel):
    success: bool
    message: str
    booking_number: str | None = None
    needs_refund: bool = False
    entity_id: str | None = None


class CallAccess(BaseModel):
    can_start: bool
    can_join: bool


class PaymentInfo(BaseModel):
    payment_link: str | None = None
    payment_deadline: datetime | None = None
    time_remaining: str | None = None
