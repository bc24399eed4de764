"""Overlap, suggestion and coordination state schemas."""

from datetime import datetime

from pydantic import BaseModel

from app.core.suggestions import SessionSuggestion
from app.schemas.user import UserSummary


class OverlapSlot(BaseModel):
    day: int
    day_name: str
    start_unit: int
    end_unit: int
    duration_units: int
    display: str


class OverlapResponse(BaseModel):
    user1: UserSummary
    user2: UserSummary
    overlapping_slots: list[OverlapSlot]
    total_overlap_hours: float


class SuggestionsResponse(BaseModel):
    user1: UserSummary
    user2: UserSummary
    suggestions: list[SessionSuggestion]
    message: str
    total_viable_slots: int


class CoordinationStateOut(BaseModel):
    id: int
    partner_1_id: int
    partner_2_id: int
    state: str
    active_proposals_count: int
    completed_sessions_count: int
    last_availability_check: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
