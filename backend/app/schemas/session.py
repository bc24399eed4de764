"""Gym session schemas."""

from datetime import date, datetime

from pydantic import BaseModel, Field


class SessionOut(BaseModel):
    id: int
    participant_1_id: int
    participant_2_id: int
    session_date: date
    start_unit: int
    end_unit: int
    status: str
    proposal_id: int | None
    created_by_id: int | None
    cancelled_by_id: int | None
    cancelled_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class SessionCancel(BaseModel):
    user_identifier: str = Field(min_length=1)
