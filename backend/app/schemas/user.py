"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    telegram_id: str | None = Field(default=None, max_length=64)


class UserSummary(BaseModel):
    id: int
    name: str
    email: str

    model_config = {"from_attributes": True}


class UserState(BaseModel):
    id: int
    name: str
    email: str
    telegram_id: str | None
    partner_id: int | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
