"""Availability schemas - weekly slots in half-hour units."""

from pydantic import BaseModel, Field

from app.core.timeslots import format_unit


class SlotIn(BaseModel):
    day: int = Field(ge=0, le=6, description="0 = Sunday")
    start_unit: int = Field(ge=0, le=47)
    end_unit: int = Field(ge=0, le=47)


class AvailabilityUpdate(BaseModel):
    slots: list[SlotIn]


class SlotOut(BaseModel):
    id: int
    day: int
    start_unit: int
    end_unit: int
    start_time: str = ""
    end_time: str = ""

    model_config = {"from_attributes": True}

    @classmethod
    def from_row(cls, row) -> "SlotOut":
        return cls(
            id=row.id,
            day=row.day,
            start_unit=row.start_unit,
            end_unit=row.end_unit,
            start_time=format_unit(row.start_unit),
            end_time=format_unit(row.end_unit),
        )


class AvailabilityResponse(BaseModel):
    user_id: int
    slots: list[SlotOut]


class ClearResponse(BaseModel):
    user_id: int
    removed: int
