"""Partner request model - invitation to become gym partners."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base, utcnow


class PartnerRequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


def pair_key(user_a: int, user_b: int) -> str:
    """Order-independent key for a pair of users."""
    low, high = sorted((user_a, user_b))
    return f"{low}:{high}"


class PartnerRequest(Base):
    __tablename__ = "partner_requests"
    __table_args__ = (
        # At most one pending request per unordered pair
        Index(
            "uq_partner_requests_pending_pair",
            "pair_key",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    requester_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    target_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    pair_key: Mapped[str] = mapped_column(String(50))

    status: Mapped[str] = mapped_column(String(20), default=PartnerRequestStatus.PENDING.value, index=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_pending(self) -> bool:
        return self.status == PartnerRequestStatus.PENDING
