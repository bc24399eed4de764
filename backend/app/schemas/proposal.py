"""Session proposal schemas."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field


class ProposalCreate(BaseModel):
    proposer_identifier: str = Field(min_length=1)
    proposed_date: date
    start_unit: int
    end_unit: int
    message: str | None = Field(default=None, max_length=500)


class ProposalRespond(BaseModel):
    user_identifier: str = Field(min_length=1)
    decision: Literal["accept", "reject"]
    message: str | None = Field(default=None, max_length=500)


class CounterProposal(BaseModel):
    user_identifier: str = Field(min_length=1)
    proposed_date: date
    start_unit: int
    end_unit: int
    message: str | None = Field(default=None, max_length=500)


class ProposalCancel(BaseModel):
    user_identifier: str = Field(min_length=1)


class ProposalOut(BaseModel):
    id: int
    proposer_id: int
    partner_id: int
    proposed_date: date
    start_unit: int
    end_unit: int
    status: str
    message: str | None
    response_message: str | None
    parent_proposal_id: int | None
    session_id: int | None
    created_at: datetime
    responded_at: datetime | None

    model_config = {"from_attributes": True}


class ProposalDecisionResponse(BaseModel):
    proposal: ProposalOut
    session_id: int | None = None


class CounterProposalResponse(BaseModel):
    original: ProposalOut
    counter: ProposalOut
