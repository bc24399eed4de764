"""Coordination state model - advisory phase label for a partner pair."""

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base, utcnow


class CoordinationPhase(str, enum.Enum):
    WAITING_AVAILABILITY = "waiting_availability"
    AVAILABILITY_READY = "availability_ready"
    SESSIONS_CONFIRMED = "sessions_confirmed"


class CoordinationState(Base):
    __tablename__ = "coordination_states"
    __table_args__ = (
        UniqueConstraint("partner_1_id", "partner_2_id", name="uq_coordination_pair"),
        CheckConstraint("partner_1_id < partner_2_id", name="ck_coordination_pair_order"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    # Stored lower id first so a pair has exactly one row
    partner_1_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    partner_2_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))

    state: Mapped[str] = mapped_column(
        String(30), default=CoordinationPhase.WAITING_AVAILABILITY.value, index=True
    )
    active_proposals_count: Mapped[int] = mapped_column(Integer, default=0)
    completed_sessions_count: Mapped[int] = mapped_column(Integer, default=0)
    last_availability_check: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def partners(self) -> list[int]:
        return [self.partner_1_id, self.partner_2_id]
