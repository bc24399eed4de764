"""Notification endpoints - a user's inbox."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.schemas.notification import MarkAllReadResponse, NotificationList, NotificationOut
from app.services.notification_service import notification_service

router = APIRouter()


@router.get("/", response_model=NotificationList)
async def list_notifications(
    identifier: str = Query(min_length=1),
    unread_only: bool = False,
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    notifications, unread_count = await notification_service.list_notifications(
        db, identifier, unread_only=unread_only, limit=limit
    )
    return NotificationList(
        notifications=[NotificationOut.model_validate(n) for n in notifications],
        unread_count=unread_count,
    )


@router.patch("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: int,
    identifier: str = Query(min_length=1),
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.mark_read(db, notification_id, identifier)


@router.post("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(identifier: str = Query(min_length=1), db: AsyncSession = Depends(get_db)):
    return MarkAllReadResponse(updated=await notification_service.mark_all_read(db, identifier))
