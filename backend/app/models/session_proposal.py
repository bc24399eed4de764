"""Session proposal model - one directional offer of a date and time range."""

import enum
from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base, utcnow


class ProposalStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COUNTER_PROPOSED = "counter_proposed"
    CANCELLED = "cancelled"


class SessionProposal(Base):
    __tablename__ = "session_proposals"
    __table_args__ = (
        CheckConstraint("proposer_id != partner_id", name="ck_proposal_distinct_users"),
        CheckConstraint("end_unit - start_unit >= 4", name="ck_proposal_min_duration"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    proposer_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    partner_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)

    proposed_date: Mapped[date] = mapped_column(Date, index=True)
    start_unit: Mapped[int] = mapped_column(Integer)
    end_unit: Mapped[int] = mapped_column(Integer)

    status: Mapped[str] = mapped_column(String(20), default=ProposalStatus.PENDING.value, index=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Set when this proposal was created as a counter to another
    parent_proposal_id: Mapped[int | None] = mapped_column(
        ForeignKey("session_proposals.id", ondelete="CASCADE"), nullable=True
    )
    # sessions.id once accepted (no FK: sessions already reference proposals)
    session_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __mapper_args__ = {"version_id_col": version}

    @property
    def duration_units(self) -> int:
        return self.end_unit - self.start_unit

    @property
    def is_pending(self) -> bool:
        return self.status == ProposalStatus.PENDING
