from datetime import datetime
from decimal import Decimal
from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ...core.clock import ensure_aware, utc_values
from ...domain import TimeSlot
from ..session import Base


class TimeSlotRecord(Base):
    __tablename__ = "time_slots"
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_time_slot_duration_positive"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    trainer_id: Mapped[str] = mapped_column(String(64), index=True)
    trainer_name: Mapped[str] = mapped_column(String(255), default="")
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    duration_minutes: Mapped[int] = mapped_column(Integer)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    is_booked: Mapped[bool] = mapped_column(Boolean, default=False)
    booked_by_user_id: Mapped[str | None] = mapped_column(String(64))
    booking_id: Mapped[str | None] = mapped_column(String(36))
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @classmethod
    def from_domain(cls, slot: TimeSlot) -> "TimeSlotRecord":
        return cls(**utc_values(slot.model_dump()))

    def to_domain(self) -> TimeSlot:
        return TimeSlot(
            id=self.id,
            trainer_id=self.trainer_id,
            trainer_name=self.trainer_name or "",
            start_time=ensure_aware(self.start_time),
            duration_minutes=self.duration_minutes,
            price=self.price,
            is_booked=self.is_booked,
            booked_by_user_id=self.booked_by_user_id,
            booking_id=self.booking_id,
            created_at=ensure_aware(self.created_at) if self.created_at else None,
        )
