"""Matching service - overlap and suggestion queries for two users."""

from dataclasses import dataclass
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.overlap import Overlap, find_overlaps, total_overlap_hours
from app.core.suggestions import SuggestionResult, suggest_sessions
from app.models.user import User
from app.services.availability_service import availability_service
from app.services.partner_service import partner_service
from app.services.suggestion_cache import SuggestionCache, slot_fingerprint


@dataclass
class OverlapReport:
    user1: User
    user2: User
    overlapping_slots: list[Overlap]
    total_overlap_hours: float


class MatchingService:
    @staticmethod
    async def find_overlap(db: AsyncSession, identifier_1: str, identifier_2: str) -> OverlapReport:
        user1 = await partner_service.find_by_identifier(db, identifier_1)
        user2 = await partner_service.find_by_identifier(db, identifier_2)

        overlaps = find_overlaps(
            await availability_service.get_slots(db, user1.id),
            await availability_service.get_slots(db, user2.id),
        )
        return OverlapReport(
            user1=user1,
            user2=user2,
            overlapping_slots=overlaps,
            total_overlap_hours=total_overlap_hours(overlaps),
        )

    @staticmethod
    async def suggest(
        db: AsyncSession,
        identifier_1: str,
        identifier_2: str,
        today: date | None = None,
        cache: SuggestionCache | None = None,
    ) -> tuple[User, User, SuggestionResult]:
        """Up to two session suggestions for the pair, served from cache when fresh."""
        today = today or date.today()
        user1 = await partner_service.find_by_identifier(db, identifier_1)
        user2 = await partner_service.find_by_identifier(db, identifier_2)
        slots = {
            user1.id: await availability_service.get_slots(db, user1.id),
            user2.id: await availability_service.get_slots(db, user2.id),
        }

        fingerprint = slot_fingerprint(slots)
        if cache is not None:
            cached = await cache.get(user1.id, user2.id, today, fingerprint)
            if cached is not None:
                return user1, user2, cached

        result = suggest_sessions(
            find_overlaps(slots[user1.id], slots[user2.id]),
            participants=sorted((user1.id, user2.id)),
            today=today,
        )
        if cache is not None:
            await cache.set(user1.id, user2.id, today, fingerprint, result)
        return user1, user2, result


matching_service = MatchingService()
