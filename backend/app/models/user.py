"""User model - identity, contact identifiers and the partner link."""

from datetime import datetime

from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))

    # Contact identifiers; either one resolves the user
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    telegram_id: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)

    # Symmetric: if A.partner_id == B.id then B.partner_id == A.id
    partner_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    # Bumped on every UPDATE; concurrent partner links fail instead of overwriting
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version}

    @property
    def has_partner(self) -> bool:
        return self.partner_id is not None
