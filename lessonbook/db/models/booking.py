from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ...core.clock import ensure_aware, utc_values
from ...domain import Booking, BookingStatus, Message, PaymentStatus
from ..session import Base


def _aware(value: datetime | None) -> datetime | None:
    return ensure_aware(value) if value is not None else None


class BookingRecord(Base):
    __tablename__ = "bookings"
    __table_args__ = (UniqueConstraint("booking_number", name="uq_booking_number"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_number: Mapped[str] = mapped_column(String(32), index=True)
    trainer_id: Mapped[str] = mapped_column(String(64), index=True)
    trainer_name: Mapped[str] = mapped_column(String(255))
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    user_name: Mapped[str] = mapped_column(String(255))
    user_email: Mapped[str] = mapped_column(String(255), default="")
    slot_id: Mapped[str | None] = mapped_column(String(36))
    requested_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    confirmed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    duration_minutes: Mapped[int] = mapped_column(Integer)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    notes: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[BookingStatus] = mapped_column(Enum(BookingStatus), default=BookingStatus.pending)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus), default=PaymentStatus.none
    )
    payment_deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payment_order_id: Mapped[str | None] = mapped_column(String(128), index=True)
    payment_transaction_id: Mapped[str | None] = mapped_column(String(128))
    payment_link: Mapped[str | None] = mapped_column(String(512))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    needs_manual_refund: Mapped[bool] = mapped_column(Boolean, default=False)
    externally_billed: Mapped[bool] = mapped_column(Boolean, default=False)
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    trainer_revenue: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    platform_fee: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    messages = relationship(
        "BookingMessageRecord",
        back_populates="booking",
        order_by="BookingMessageRecord.position",
        cascade="all, delete-orphan",
    )

    @classmethod
    def from_domain(cls, booking: Booking) -> "BookingRecord":
        record = cls(**utc_values(booking.model_dump(exclude={"messages"})))
        record.messages = [
            BookingMessageRecord.from_domain(message, position)
            for position, message in enumerate(booking.messages)
        ]
        return record

    def to_domain(self) -> Booking:
        return Booking(
            id=self.id,
            booking_number=self.booking_number,
            trainer_id=self.trainer_id,
            trainer_name=self.trainer_name,
            user_id=self.user_id,
            user_name=self.user_name,
            user_email=self.user_email or "",
            slot_id=self.slot_id,
            requested_date=ensure_aware(self.requested_date),
            confirmed_date=_aware(self.confirmed_date),
            duration_minutes=self.duration_minutes,
            price=self.price,
            notes=self.notes or "",
            status=self.status,
            payment_status=self.payment_status,
            payment_deadline=_aware(self.payment_deadline),
            payment_order_id=self.payment_order_id,
            payment_transaction_id=self.payment_transaction_id,
            payment_link=self.payment_link,
            paid_at=_aware(self.paid_at),
            needs_manual_refund=self.needs_manual_refund,
            externally_billed=self.externally_billed,
            reminder_sent_at=_aware(self.reminder_sent_at),
            trainer_revenue=self.trainer_revenue,
            platform_fee=self.platform_fee,
            messages=[message.to_domain() for message in self.messages],
            created_at=ensure_aware(self.created_at),
            updated_at=ensure_aware(self.updated_at),
        )


class BookingMessageRecord(Base):
    __tablename__ = "booking_messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_id: Mapped[str] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), index=True)
    position: Mapped[int] = mapped_column(Integer)
    sender_id: Mapped[str] = mapped_column(String(64))
    sender_name: Mapped[str] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)

    booking = relationship("BookingRecord", back_populates="messages")

    @classmethod
    def from_domain(cls, message: Message, position: int) -> "BookingMessageRecord":
        return cls(position=position, **utc_values(message.model_dump()))

    def to_domain(self) -> Message:
        return Message(
            id=self.id,
            sender_id=self.sender_id,
            sender_name=self.sender_name,
            content=self.content,
            timestamp=ensure_aware(self.timestamp),
            is_read=self.is_read,
        )
