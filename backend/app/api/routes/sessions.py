"""Session endpoints - confirmed gym sessions."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.schemas.session import SessionCancel, SessionOut
from app.services.session_service import session_service

router = APIRouter()


@router.get("/", response_model=list[SessionOut])
async def list_sessions(
    identifier: str = Query(min_length=1),
    status: str | None = None,
    upcoming: bool = False,
    db: AsyncSession = Depends(get_db),
):
    return await session_service.list_sessions(db, identifier, status=status, upcoming=upcoming)


@router.post("/{session_id}/cancel", response_model=SessionOut)
async def cancel_session(session_id: int, data: SessionCancel, db: AsyncSession = Depends(get_db)):
    return await session_service.cancel(db, session_id, data.user_identifier)
