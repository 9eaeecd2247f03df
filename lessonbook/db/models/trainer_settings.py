from decimal import Decimal
from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ...domain import TrainerSettings
from ..session import Base


class TrainerSettingsRecord(Base):
    __tablename__ = "trainer_settings"

    trainer_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    price_per_hour: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    min_duration: Mapped[int] = mapped_column(Integer)
    max_duration: Mapped[int] = mapped_column(Integer)
    description: Mapped[str] = mapped_column(Text, default="")

    @classmethod
    def from_domain(cls, settings: TrainerSettings) -> "TrainerSettingsRecord":
        return cls(**settings.model_dump())

    def to_domain(self) -> TrainerSettings:
        return TrainerSettings(
            trainer_id=self.trainer_id,
            is_enabled=self.is_enabled,
            price_per_hour=self.price_per_hour,
            min_duration=self.min_duration,
            max_duration=self.max_duration,
            description=self.description or "",
        )
