"""Overlap engine - intersects two users' weekly availability.

Pure functions over slot snapshots; safe to call concurrently.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from app.core.timeslots import day_name, format_unit


@dataclass(frozen=True)
class Slot:
    """One free window on a weekday, in half-hour units."""
    day: int
    start_unit: int
    end_unit: int


@dataclass(frozen=True)
class Overlap:
    """A maximal window, on one day, when both users are free."""
    day: int
    start_unit: int
    end_unit: int

    @property
    def duration_units(self) -> int:
        return self.end_unit - self.start_unit

    @property
    def hours(self) -> float:
        return self.duration_units * 0.5

    @property
    def day_name(self) -> str:
        return day_name(self.day)

    @property
    def display(self) -> str:
        return f"{self.day_name.title()} {format_unit(self.start_unit)}-{format_unit(self.end_unit)}"


def _group_by_day(slots: Iterable[Slot]) -> dict[int, list[Slot]]:
    by_day: dict[int, list[Slot]] = defaultdict(list)
    for slot in slots:
        by_day[slot.day].append(slot)
    return by_day


def merge_overlaps(overlaps: list[Overlap]) -> list[Overlap]:
    """Sort by (day, start) and merge same-day windows that touch or overlap."""
    merged: list[Overlap] = []
    for current in sorted(overlaps, key=lambda o: (o.day, o.start_unit)):
        if merged and merged[-1].day == current.day and current.start_unit <= merged[-1].end_unit:
            last = merged[-1]
            merged[-1] = Overlap(last.day, last.start_unit, max(last.end_unit, current.end_unit))
        else:
            merged.append(current)
    return merged


def find_overlaps(slots_a: Iterable[Slot], slots_b: Iterable[Slot]) -> list[Overlap]:
    """Intersect two slot sets.

    Every same-day pair contributes max(start)..min(end) when non-empty; the
    pieces are then merged, which also absorbs duplicated or overlapping slots
    within one user's own set. Short overlaps are kept; callers filter.
    """
    a_by_day = _group_by_day(slots_a)
    b_by_day = _group_by_day(slots_b)

    pieces: list[Overlap] = []
    for day in a_by_day.keys() & b_by_day.keys():
        for a in a_by_day[day]:
            for b in b_by_day[day]:
                start = max(a.start_unit, b.start_unit)
                end = min(a.end_unit, b.end_unit)
                if start < end:
                    pieces.append(Overlap(day, start, end))

    return merge_overlaps(pieces)


def total_overlap_hours(overlaps: Iterable[Overlap]) -> float:
    return sum(o.hours for o in overlaps)
