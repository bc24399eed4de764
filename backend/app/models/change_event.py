"""Change event model - transactional outbox read by the change feed.

Rows are written by the flush hook in app.core.change_capture within the same
transaction as the mutation they describe, so a committed change always has
its event and a rolled-back change never does.
"""

from datetime import datetime

from sqlalchemy import String, Integer, DateTime, JSON, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base, utcnow


class ChangeEvent(Base):
    __tablename__ = "change_events"

    id: Mapped[int] = mapped_column(primary_key=True)  # feed order
    entity: Mapped[str] = mapped_column(String(30), index=True)  # "session_proposal", ...
    operation: Mapped[str] = mapped_column(String(10))  # INSERT / UPDATE / DELETE
    record: Mapped[dict] = mapped_column(JSON)  # row snapshot after the change
    changes: Mapped[dict] = mapped_column(JSON, default=dict)  # column -> previous value

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
