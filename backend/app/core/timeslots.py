"""Half-hour unit and weekday helpers.

A day is indexed in half-hour units 0-47 (unit 20 = 10:00). Weekdays are
0-6 with 0 = Sunday, so Saturday (6) and Sunday (0) wrap around as neighbours.
"""

from datetime import date, timedelta

UNITS_PER_DAY = 48
MAX_UNIT = UNITS_PER_DAY - 1
MIN_SESSION_UNITS = 4  # 2 hours

DAY_NAMES = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]


def day_index(day: int | str) -> int:
    """Normalize a weekday given as index or (case-insensitive) name."""
    if isinstance(day, str):
        key = day.strip().lower()
        if key.isdigit():
            return day_index(int(key))
        try:
            return DAY_NAMES.index(key)
        except ValueError:
            raise ValueError(f"Unknown day: {day!r}") from None
    if not 0 <= day < len(DAY_NAMES):
        raise ValueError(f"Day index out of range: {day}")
    return day


def day_name(day: int) -> str:
    return DAY_NAMES[day]


def format_unit(unit: int) -> str:
    """Render a unit as HH:MM (unit 37 -> '18:30')."""
    hours, half = divmod(unit, 2)
    return f"{hours:02d}:{half * 30:02d}"


def parse_time(value: str) -> int:
    """Parse 'HH:MM' (minutes 00 or 30) into a unit."""
    hours, _, minutes = value.strip().partition(":")
    h, m = int(hours), int(minutes or 0)
    if m not in (0, 30) or not 0 <= h <= 23:
        raise ValueError(f"Time must be on a half hour: {value!r}")
    return h * 2 + m // 30


def start_hour(unit: int) -> int:
    return unit // 2


def are_adjacent_days(a: int, b: int) -> bool:
    """True when two weekdays are neighbours, wrapping Saturday/Sunday."""
    return (a - b) % 7 in (1, 6)


def weekday_of(d: date) -> int:
    """Weekday index of a calendar date (0 = Sunday)."""
    return d.isoweekday() % 7


def next_date_for_day(day: int, today: date) -> date:
    """Next calendar date falling on `day`, strictly after `today`."""
    days_until = (day - weekday_of(today)) % 7
    if days_until == 0:
        days_until = 7
    return today + timedelta(days=days_until)


def is_valid_range(start_unit: int, end_unit: int) -> bool:
    return 0 <= start_unit < end_unit <= MAX_UNIT
