"""Partner endpoints - requests, responses and relationship status."""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.schemas.partner import (
    PartnerRequestCreate,
    PartnerRequestOut,
    PartnerRequestRespond,
    RelationshipStatus,
)
from app.services.partner_service import partner_service

router = APIRouter()


@router.post("/requests", response_model=PartnerRequestOut, status_code=201)
async def send_request(data: PartnerRequestCreate, db: AsyncSession = Depends(get_db)):
    return await partner_service.send_request(
        db, data.requester_identifier, data.target_identifier, data.message
    )


@router.post("/requests/{request_id}/respond", response_model=PartnerRequestOut)
async def respond_to_request(
    request_id: int, data: PartnerRequestRespond, db: AsyncSession = Depends(get_db)
):
    """Accept or reject; accepting links both users as partners."""
    return await partner_service.respond(
        db, request_id, data.responder_identifier, data.decision == "accept", data.message
    )


@router.get("/requests", response_model=list[PartnerRequestOut])
async def list_requests(
    identifier: str = Query(min_length=1),
    direction: Literal["incoming", "outgoing", "all"] = "all",
    status: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    return await partner_service.list_requests(db, identifier, direction, status)


@router.get("/status", response_model=RelationshipStatus)
async def relationship_status(
    user1: str = Query(min_length=1),
    user2: str = Query(min_length=1),
    db: AsyncSession = Depends(get_db),
):
    status, latest = await partner_service.relationship_status(db, user1, user2)
    return RelationshipStatus(
        status=status,
        request=PartnerRequestOut.model_validate(latest) if latest else None,
    )
