"""Partner request schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class PartnerRequestCreate(BaseModel):
    requester_identifier: str = Field(min_length=1)
    target_identifier: str = Field(min_length=1)
    message: str | None = Field(default=None, max_length=500)


class PartnerRequestRespond(BaseModel):
    responder_identifier: str = Field(min_length=1)
    decision: Literal["accept", "reject"]
    message: str | None = Field(default=None, max_length=500)


class PartnerRequestOut(BaseModel):
    id: int
    requester_id: int
    target_id: int
    status: str
    message: str | None
    response_message: str | None
    created_at: datetime
    responded_at: datetime | None

    model_config = {"from_attributes": True}


class RelationshipStatus(BaseModel):
    status: str  # "partners", a request status, or "none"
    request: PartnerRequestOut | None = None
