"""Availability endpoints - a user's weekly free slots."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.overlap import Slot
from app.db.database import get_db
from app.schemas.availability import AvailabilityResponse, AvailabilityUpdate, ClearResponse, SlotOut
from app.services.availability_service import availability_service
from app.services.partner_service import partner_service

router = APIRouter()


@router.get("/{identifier}", response_model=AvailabilityResponse)
async def list_availability(identifier: str, db: AsyncSession = Depends(get_db)):
    user = await partner_service.find_by_identifier(db, identifier)
    rows = await availability_service.list_slots(db, user.id)
    return AvailabilityResponse(user_id=user.id, slots=[SlotOut.from_row(r) for r in rows])


@router.put("/{identifier}", response_model=AvailabilityResponse)
async def replace_availability(
    identifier: str, data: AvailabilityUpdate, db: AsyncSession = Depends(get_db)
):
    """Replace the user's whole weekly availability."""
    user = await partner_service.find_by_identifier(db, identifier)
    rows = await availability_service.replace(
        db, user.id, [Slot(s.day, s.start_unit, s.end_unit) for s in data.slots]
    )
    return AvailabilityResponse(user_id=user.id, slots=[SlotOut.from_row(r) for r in rows])


@router.delete("/{identifier}", response_model=ClearResponse)
async def clear_availability(identifier: str, db: AsyncSession = Depends(get_db)):
    user = await partner_service.find_by_identifier(db, identifier)
    removed = await availability_service.clear(db, user.id)
    return ClearResponse(user_id=user.id, removed=removed)
