"""Tests for the overlap engine and half-hour unit helpers."""

from datetime import date

import pytest

from app.core.overlap import Overlap, Slot, find_overlaps, merge_overlaps, total_overlap_hours
from app.core.timeslots import (
    are_adjacent_days,
    day_index,
    format_unit,
    next_date_for_day,
    parse_time,
    weekday_of,
)

MONDAY, WEDNESDAY, THURSDAY = 1, 3, 4


def _t(value: str) -> int:
    return parse_time(value)


# ---------------------------------------------------------------------------
# Unit helpers
# ---------------------------------------------------------------------------


def test_parse_and_format_units():
    assert parse_time("00:00") == 0
    assert parse_time("10:00") == 20
    assert parse_time("18:30") == 37
    assert parse_time("23:30") == 47
    assert format_unit(37) == "18:30"
    assert format_unit(0) == "00:00"


@pytest.mark.parametrize("value", ["18:15", "24:00", "7:45"])
def test_parse_time_rejects_off_grid(value):
    with pytest.raises(ValueError):
        parse_time(value)


def test_day_index_accepts_names_and_numbers():
    assert day_index("Sunday") == 0
    assert day_index("saturday") == 6
    assert day_index("3") == 3
    with pytest.raises(ValueError):
        day_index("funday")
    with pytest.raises(ValueError):
        day_index(7)


def test_adjacent_days_wrap_around_the_week():
    assert are_adjacent_days(0, 1)
    assert are_adjacent_days(6, 0)
    assert are_adjacent_days(0, 6)
    assert not are_adjacent_days(1, 3)
    assert not are_adjacent_days(2, 2)


def test_next_date_is_strictly_after_today():
    monday = date(2024, 1, 1)
    assert weekday_of(monday) == MONDAY
    assert next_date_for_day(MONDAY, monday) == date(2024, 1, 8)
    assert next_date_for_day(THURSDAY, monday) == date(2024, 1, 4)
    assert next_date_for_day(0, monday) == date(2024, 1, 7)


# ---------------------------------------------------------------------------
# Overlap engine
# ---------------------------------------------------------------------------


def test_short_overlaps_are_reported():
    """Both windows are 1.5h; the engine keeps them, filtering is the caller's job."""
    a = [Slot(MONDAY, _t("18:00"), _t("20:00")), Slot(WEDNESDAY, _t("18:00"), _t("20:30"))]
    b = [Slot(MONDAY, _t("18:30"), _t("20:00")), Slot(WEDNESDAY, _t("18:00"), _t("19:30"))]

    overlaps = find_overlaps(a, b)

    assert overlaps == [
        Overlap(MONDAY, _t("18:30"), _t("20:00")),
        Overlap(WEDNESDAY, _t("18:00"), _t("19:30")),
    ]
    assert [o.duration_units for o in overlaps] == [3, 3]
    assert total_overlap_hours(overlaps) == 3.0


def test_overlap_is_symmetric():
    a = [Slot(1, 10, 20), Slot(1, 30, 40), Slot(5, 0, 47), Slot(6, 12, 14)]
    b = [Slot(1, 15, 35), Slot(5, 20, 22), Slot(0, 0, 47)]

    assert find_overlaps(a, b) == find_overlaps(b, a)


def test_overlaps_are_ordered_and_well_formed():
    a = [Slot(4, 30, 40), Slot(2, 10, 20), Slot(2, 30, 35)]
    b = [Slot(2, 0, 47), Slot(4, 35, 47)]

    overlaps = find_overlaps(a, b)

    assert [(o.day, o.start_unit) for o in overlaps] == [(2, 10), (2, 30), (4, 35)]
    for o in overlaps:
        assert o.start_unit < o.end_unit
        assert o.duration_units == o.end_unit - o.start_unit


def test_different_days_never_overlap():
    assert find_overlaps([Slot(1, 10, 20)], [Slot(2, 10, 20)]) == []
    assert find_overlaps([], [Slot(2, 10, 20)]) == []


def test_touching_windows_meet_only_at_a_point():
    assert find_overlaps([Slot(1, 10, 20)], [Slot(1, 20, 30)]) == []


def test_self_overlapping_slots_are_merged():
    """Duplicated and overlapping slots within one user collapse into one window."""
    a = [Slot(3, 30, 38), Slot(3, 34, 42), Slot(3, 30, 38)]
    b = [Slot(3, 28, 44)]

    assert find_overlaps(a, b) == [Overlap(3, 30, 42)]


def test_merge_joins_touching_same_day_windows_only():
    merged = merge_overlaps([Overlap(2, 20, 24), Overlap(1, 10, 12), Overlap(2, 24, 30), Overlap(1, 12, 14)])
    assert merged == [Overlap(1, 10, 14), Overlap(2, 20, 30)]


def test_overlap_display():
    overlap = Overlap(MONDAY, 37, 40)
    assert overlap.day_name == "monday"
    assert overlap.hours == 1.5
    assert overlap.display == "Monday 18:30-20:00"
