"""Availability store - read and write a user's weekly free slots."""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidSlotError
from app.core.overlap import Slot
from app.core.timeslots import is_valid_range
from app.models.availability import AvailabilitySlot


class AvailabilityService:
    @staticmethod
    def validate(slot: Slot) -> None:
        if not 0 <= slot.day <= 6:
            raise InvalidSlotError(f"Day must be 0-6 (0 = Sunday), got {slot.day}")
        if not is_valid_range(slot.start_unit, slot.end_unit):
            raise InvalidSlotError("Time range must use units 0-47 with end after start")

    @staticmethod
    async def list_slots(db: AsyncSession, user_id: int) -> list[AvailabilitySlot]:
        result = await db.execute(
            select(AvailabilitySlot)
            .where(AvailabilitySlot.user_id == user_id)
            .order_by(AvailabilitySlot.day, AvailabilitySlot.start_unit, AvailabilitySlot.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_slots(db: AsyncSession, user_id: int) -> list[Slot]:
        """Plain slot snapshots for the overlap engine."""
        return [row.to_slot() for row in await availability_service.list_slots(db, user_id)]

    @staticmethod
    async def replace(db: AsyncSession, user_id: int, slots: Iterable[Slot]) -> list[AvailabilitySlot]:
        """Replace the user's whole weekly set. Nothing is written if any slot is invalid."""
        slots = list(slots)
        for slot in slots:
            availability_service.validate(slot)

        # ORM deletes so each removed slot is captured by the change feed
        for existing in await availability_service.list_slots(db, user_id):
            await db.delete(existing)

        rows = [
            AvailabilitySlot(user_id=user_id, day=s.day, start_unit=s.start_unit, end_unit=s.end_unit)
            for s in slots
        ]
        db.add_all(rows)
        await db.flush()
        return sorted(rows, key=lambda r: (r.day, r.start_unit, r.id))

    @staticmethod
    async def clear(db: AsyncSession, user_id: int) -> int:
        existing = await availability_service.list_slots(db, user_id)
        for row in existing:
            await db.delete(row)
        await db.flush()
        return len(existing)


availability_service = AvailabilityService()
