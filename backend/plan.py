#!/usr/bin/env python3
"""CLI to preview overlaps and session suggestions for two gym buddies.

Usage:
    python plan.py                              # uses sample_schedule.yaml
    python plan.py my_schedule.yaml             # offline, from a YAML file
    python plan.py --api http://localhost:8000 alice@example.com bob@example.com

Offline mode needs no server, database or Redis: it runs the overlap engine
and the suggestion generator directly on the YAML availability.

YAML format:
    today: 2026-10-17          # optional, defaults to today
    users:
      alice:
        - {day: monday, start: "18:00", end: "20:00"}
      bob:
        - {day: monday, start: "18:30", end: "20:00"}
"""

import sys
from datetime import date
from pathlib import Path

import requests
import yaml

from app.core.overlap import Slot, find_overlaps, total_overlap_hours
from app.core.suggestions import suggest_sessions
from app.core.timeslots import day_index, format_unit, parse_time

BASE_DIR = Path(__file__).parent
DEFAULT_SCHEDULE = BASE_DIR / "sample_schedule.yaml"

DIVIDER = "\033[90m" + "─" * 50 + "\033[0m"
RESET = "\033[0m"
DIM = "\033[90m"
BOLD = "\033[1m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"


# =============================================================
# Offline mode
# =============================================================

def load_schedule(path: Path) -> tuple[dict[str, list[Slot]], date]:
    """Load users' slots from YAML. Returns ({name: slots}, today)."""
    if not path.exists():
        raise FileNotFoundError(f"Schedule not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    users = {}
    for name, entries in (raw.get("users") or {}).items():
        users[name] = [
            Slot(day_index(e["day"]), parse_time(str(e["start"])), parse_time(str(e["end"])))
            for e in entries or []
        ]
    today = raw.get("today") or date.today()
    return users, today


def print_suggestions(suggestions: list[dict], message: str):
    print()
    print(f"{BOLD}Suggestions{RESET}  {DIM}{message}{RESET}")
    for s in suggestions:
        print(
            f"  {GREEN}{s['day_name'].title():<10}{RESET} {s['date']}  "
            f"{format_unit(s['start_unit'])}-{format_unit(s['end_unit'])}  "
            f"{DIM}score {s['score']}{RESET}"
        )


def plan_offline(path: Path):
    users, today = load_schedule(path)
    if len(users) < 2:
        print(f"{RED}Need two users in {path}{RESET}")
        return

    (name_a, slots_a), (name_b, slots_b) = list(users.items())[:2]
    overlaps = find_overlaps(slots_a, slots_b)

    print(DIVIDER)
    print(f"{BOLD}{name_a} + {name_b}{RESET}  {DIM}(today: {today}){RESET}")
    print(DIVIDER)
    if not overlaps:
        print(f"  {YELLOW}No shared free time{RESET}")
    for o in overlaps:
        print(f"  {o.display}  {DIM}{o.hours:g}h{RESET}")
    print(f"  {DIM}Total overlap: {total_overlap_hours(overlaps):g}h{RESET}")

    result = suggest_sessions(overlaps, today=today)
    print_suggestions([s.model_dump(mode="json") for s in result.suggestions], result.message)
    print()


# =============================================================
# API mode
# =============================================================

def plan_via_api(base_url: str, user1: str, user2: str):
    """Ask a running server for the pair's overlap and suggestions."""
    params = {"user1": user1, "user2": user2}
    try:
        overlap = requests.get(f"{base_url}/api/coordination/overlap", params=params, timeout=10)
        overlap.raise_for_status()
        suggestions = requests.get(f"{base_url}/api/coordination/suggestions", params=params, timeout=10)
        suggestions.raise_for_status()
    except requests.exceptions.HTTPError as e:
        detail = e.response.json().get("detail", "") if e.response is not None else ""
        print(f"{RED}[API error] {e} {detail}{RESET}")
        return
    except requests.exceptions.RequestException as e:
        print(f"{RED}[API error] {e}{RESET}")
        return

    data = overlap.json()
    print(DIVIDER)
    print(f"{BOLD}{data['user1']['name']} + {data['user2']['name']}{RESET}")
    print(DIVIDER)
    for o in data["overlapping_slots"]:
        print(f"  {o['display']}  {DIM}{o['duration_units'] * 0.5:g}h{RESET}")
    print(f"  {DIM}Total overlap: {data['total_overlap_hours']:g}h{RESET}")

    result = suggestions.json()
    print_suggestions(result["suggestions"], result["message"])
    print()


# =============================================================
# Main
# =============================================================

def main():
    args = sys.argv[1:]
    if args and args[0] == "--api":
        if len(args) != 4:
            print(__doc__)
            sys.exit(2)
        plan_via_api(args[1].rstrip("/"), args[2], args[3])
        return

    plan_offline(Path(args[0]) if args else DEFAULT_SCHEDULE)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print()
    except (FileNotFoundError, ValueError) as e:
        print(f"\033[91m{e}\033[0m")
        sys.exit(1)
