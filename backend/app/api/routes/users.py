"""User endpoints - register and look up users."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.schemas.user import UserCreate, UserState
from app.services.partner_service import partner_service

router = APIRouter()


@router.post("/", response_model=UserState, status_code=201)
async def create_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a user."""
    return await partner_service.register_user(db, data.name, data.email, data.telegram_id)


@router.get("/{identifier}", response_model=UserState)
async def get_user(identifier: str, db: AsyncSession = Depends(get_db)):
    """Find a user by email or Telegram id."""
    return await partner_service.find_by_identifier(db, identifier)
