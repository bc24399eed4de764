"""Gym session model - a confirmed meeting between two partners."""

import enum
from datetime import date, datetime

from sqlalchemy import DateTime, Date, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base, utcnow


class SessionStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class GymSession(Base):
    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(primary_key=True)
    participant_1_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    participant_2_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)

    session_date: Mapped[date] = mapped_column(Date, index=True)
    start_unit: Mapped[int] = mapped_column(Integer)
    end_unit: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(20), default=SessionStatus.CONFIRMED.value, index=True)

    # Originating proposal; sessions only come from accepted proposals
    proposal_id: Mapped[int | None] = mapped_column(
        ForeignKey("session_proposals.id", ondelete="SET NULL"), nullable=True, unique=True
    )
    created_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    cancelled_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version}

    @property
    def participants(self) -> list[int]:
        return [self.participant_1_id, self.participant_2_id]
