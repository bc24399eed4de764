"""Availability slot model - one weekly free window owned by a user."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.core.overlap import Slot
from app.db.database import Base, utcnow


class AvailabilitySlot(Base):
    __tablename__ = "availability_slots"
    __table_args__ = (
        CheckConstraint("day >= 0 AND day <= 6", name="ck_availability_day"),
        CheckConstraint("start_unit >= 0 AND end_unit <= 47 AND end_unit > start_unit", name="ck_availability_units"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    day: Mapped[int] = mapped_column(Integer)  # 0 = Sunday
    start_unit: Mapped[int] = mapped_column(Integer)  # half-hour index
    end_unit: Mapped[int] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def to_slot(self) -> Slot:
        return Slot(day=self.day, start_unit=self.start_unit, end_unit=self.end_unit)
