"""Proposal endpoints - negotiate sessions between partners."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.schemas.proposal import (
    CounterProposal,
    CounterProposalResponse,
    ProposalCancel,
    ProposalCreate,
    ProposalDecisionResponse,
    ProposalOut,
    ProposalRespond,
)
from app.services.proposal_service import proposal_service

router = APIRouter()


@router.post("/", response_model=ProposalOut, status_code=201)
async def create_proposal(data: ProposalCreate, db: AsyncSession = Depends(get_db)):
    """Propose a session to the caller's partner."""
    return await proposal_service.propose(
        db, data.proposer_identifier, data.proposed_date, data.start_unit, data.end_unit, data.message
    )


@router.get("/", response_model=list[ProposalOut])
async def list_proposals(
    identifier: str = Query(min_length=1),
    status: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    return await proposal_service.list_proposals(db, identifier, status)


@router.post("/{proposal_id}/respond", response_model=ProposalDecisionResponse)
async def respond_to_proposal(
    proposal_id: int, data: ProposalRespond, db: AsyncSession = Depends(get_db)
):
    proposal, session = await proposal_service.respond(
        db, proposal_id, data.user_identifier, data.decision == "accept", data.message
    )
    return ProposalDecisionResponse(
        proposal=ProposalOut.model_validate(proposal),
        session_id=session.id if session else None,
    )


@router.post("/{proposal_id}/counter", response_model=CounterProposalResponse, status_code=201)
async def counter_proposal(
    proposal_id: int, data: CounterProposal, db: AsyncSession = Depends(get_db)
):
    original, counter = await proposal_service.counter_propose(
        db, proposal_id, data.user_identifier, data.proposed_date,
        data.start_unit, data.end_unit, data.message,
    )
    return CounterProposalResponse(
        original=ProposalOut.model_validate(original),
        counter=ProposalOut.model_validate(counter),
    )


@router.post("/{proposal_id}/cancel", response_model=ProposalOut)
async def cancel_proposal(
    proposal_id: int, data: ProposalCancel, db: AsyncSession = Depends(get_db)
):
    return await proposal_service.cancel(db, proposal_id, data.user_identifier)


@router.get("/{proposal_id}/chain", response_model=list[ProposalOut])
async def negotiation_chain(proposal_id: int, db: AsyncSession = Depends(get_db)):
    """The counter-proposal chain containing this proposal, oldest first."""
    return await proposal_service.negotiation_chain(db, proposal_id)
