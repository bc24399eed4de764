"""Coordination endpoints - overlap, suggestions and pair state."""

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.db.database import get_db
from app.db.redis import get_redis
from app.schemas.coordination import (
    CoordinationStateOut,
    OverlapResponse,
    OverlapSlot,
    SuggestionsResponse,
)
from app.schemas.user import UserSummary
from app.services.coordination_service import coordination_service
from app.services.matching_service import matching_service
from app.services.partner_service import partner_service
from app.services.suggestion_cache import SuggestionCache

router = APIRouter()


async def get_suggestion_cache(redis: aioredis.Redis = Depends(get_redis)) -> SuggestionCache:
    return SuggestionCache(redis)


@router.get("/overlap", response_model=OverlapResponse)
async def get_overlap(
    user1: str = Query(min_length=1),
    user2: str = Query(min_length=1),
    db: AsyncSession = Depends(get_db),
):
    """Windows when both users are free, with total hours."""
    report = await matching_service.find_overlap(db, user1, user2)
    return OverlapResponse(
        user1=UserSummary.model_validate(report.user1),
        user2=UserSummary.model_validate(report.user2),
        overlapping_slots=[
            OverlapSlot(
                day=o.day,
                day_name=o.day_name,
                start_unit=o.start_unit,
                end_unit=o.end_unit,
                duration_units=o.duration_units,
                display=o.display,
            )
            for o in report.overlapping_slots
        ],
        total_overlap_hours=report.total_overlap_hours,
    )


@router.get("/suggestions", response_model=SuggestionsResponse)
async def get_suggestions(
    user1: str = Query(min_length=1),
    user2: str = Query(min_length=1),
    db: AsyncSession = Depends(get_db),
    cache: SuggestionCache = Depends(get_suggestion_cache),
):
    """Up to two scored sessions on non-adjacent days."""
    first, second, result = await matching_service.suggest(db, user1, user2, cache=cache)
    return SuggestionsResponse(
        user1=UserSummary.model_validate(first),
        user2=UserSummary.model_validate(second),
        suggestions=result.suggestions,
        message=result.message,
        total_viable_slots=result.total_viable_slots,
    )


@router.get("/state", response_model=CoordinationStateOut)
async def get_state(
    user1: str = Query(min_length=1),
    user2: str = Query(min_length=1),
    db: AsyncSession = Depends(get_db),
):
    first = await partner_service.find_by_identifier(db, user1)
    second = await partner_service.find_by_identifier(db, user2)
    state = await coordination_service.get_state(db, first.id, second.id)
    if state is None:
        raise NotFoundError("No coordination state for these users")
    return state
