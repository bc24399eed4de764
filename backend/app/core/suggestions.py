"""Suggestion generator - picks up to two sessions on non-adjacent days.

Scoring constants live in data/scoring_policy.yaml. Ordering is fully
deterministic: score descending, then day, then start unit.
"""

from datetime import date
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from app.config import settings
from app.core.overlap import Overlap
from app.core.timeslots import are_adjacent_days, day_index, day_name, next_date_for_day, start_hour

DEFAULT_POLICY_PATH = Path(__file__).parent.parent / "data" / "scoring_policy.yaml"

MSG_NO_OVERLAP = "No overlapping availability found"
MSG_TOO_SHORT = "No overlapping slots with sufficient duration (2 hours minimum)"


class TimeWindow(BaseModel):
    label: str = ""
    from_hour: int = Field(ge=0, le=23)
    to_hour: int = Field(ge=0, le=23)
    bonus: int

    def matches(self, hour: int) -> bool:
        return self.from_hour <= hour <= self.to_hour


class DurationRule(BaseModel):
    points_per_unit: int = 10
    cap_units: int = 8


class ScoringPolicy(BaseModel):
    session_units: int = 4
    min_overlap_units: int = 4
    max_suggestions: int = 2
    duration: DurationRule = DurationRule()
    time_of_day: list[TimeWindow] = []
    day_bonus: dict[int, int] = {}  # weekday index -> bonus

    def time_of_day_bonus(self, hour: int) -> int:
        for window in self.time_of_day:
            if window.matches(hour):
                return window.bonus
        return 0

    def score(self, overlap: Overlap) -> int:
        duration_points = min(overlap.duration_units, self.duration.cap_units) * self.duration.points_per_unit
        return (
            duration_points
            + self.time_of_day_bonus(start_hour(overlap.start_unit))
            + self.day_bonus.get(overlap.day, 0)
        )


def load_policy(path: Path) -> ScoringPolicy:
    """Load a scoring policy from YAML; day names are mapped to weekday indexes."""
    if not path.exists():
        raise FileNotFoundError(f"Scoring policy not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    raw["day_bonus"] = {day_index(day): bonus for day, bonus in (raw.get("day_bonus") or {}).items()}
    return ScoringPolicy(**raw)


@lru_cache(maxsize=1)
def default_policy() -> ScoringPolicy:
    path = Path(settings.SCORING_POLICY_PATH) if settings.SCORING_POLICY_PATH else DEFAULT_POLICY_PATH
    return load_policy(path)


class SessionSuggestion(BaseModel):
    day: int
    day_name: str
    date: date
    start_unit: int
    end_unit: int
    duration_units: int
    score: int
    available_start_unit: int
    available_end_unit: int
    participants: list[int] = []


class SuggestionResult(BaseModel):
    suggestions: list[SessionSuggestion]
    message: str
    total_viable_slots: int = 0


def rank_overlaps(overlaps: list[Overlap], policy: ScoringPolicy) -> list[tuple[int, Overlap]]:
    """Viable overlaps with their scores, best first."""
    viable = [o for o in overlaps if o.duration_units >= policy.min_overlap_units]
    scored = [(policy.score(o), o) for o in viable]
    scored.sort(key=lambda item: (-item[0], item[1].day, item[1].start_unit))
    return scored


def place_session(overlap: Overlap, session_units: int) -> tuple[int, int]:
    """Place a fixed-length session at the end of the window; it always fits inside."""
    start = max(overlap.start_unit, overlap.end_unit - session_units)
    return start, start + session_units


def suggest_sessions(
    overlaps: list[Overlap],
    participants: list[int] | None = None,
    today: date | None = None,
    policy: ScoringPolicy | None = None,
) -> SuggestionResult:
    policy = policy or default_policy()
    today = today or date.today()

    if not overlaps:
        return SuggestionResult(suggestions=[], message=MSG_NO_OVERLAP)

    ranked = rank_overlaps(overlaps, policy)
    if not ranked:
        return SuggestionResult(suggestions=[], message=MSG_TOO_SHORT)

    suggestions: list[SessionSuggestion] = []
    used_days: set[int] = set()
    for score, overlap in ranked:
        if overlap.day in used_days or any(are_adjacent_days(overlap.day, d) for d in used_days):
            continue

        start, end = place_session(overlap, policy.session_units)
        suggestions.append(SessionSuggestion(
            day=overlap.day,
            day_name=day_name(overlap.day),
            date=next_date_for_day(overlap.day, today),
            start_unit=start,
            end_unit=end,
            duration_units=end - start,
            score=score,
            available_start_unit=overlap.start_unit,
            available_end_unit=overlap.end_unit,
            participants=list(participants or []),
        ))
        used_days.add(overlap.day)
        if len(suggestions) >= policy.max_suggestions:
            break

    if len(suggestions) == 2:
        message = "Found 2 optimal session suggestions"
    else:
        message = f"Found {len(suggestions)} session suggestion(s)"

    return SuggestionResult(suggestions=suggestions, message=message, total_viable_slots=len(ranked))
