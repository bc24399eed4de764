"""Change capture - records mutations of coordination entities as outbox rows.

An `after_flush` listener on every ORM Session inspects the flushed objects
and inserts one `change_events` row per insert, update or delete of a watched
model, on the flush's own connection. The change feed consumes those rows
later; nothing here talks to clients.
"""

import enum
from datetime import date, datetime

from sqlalchemy import event, insert, inspect
from sqlalchemy.orm import Session

from app.db.database import utcnow
from app.models.availability import AvailabilitySlot
from app.models.change_event import ChangeEvent
from app.models.coordination_state import CoordinationState
from app.models.gym_session import GymSession
from app.models.partner_request import PartnerRequest
from app.models.session_proposal import SessionProposal


class Entity(str, enum.Enum):
    PARTNER_REQUEST = "partner_request"
    SESSION_PROPOSAL = "session_proposal"
    SESSION = "session"
    COORDINATION_STATE = "coordination_state"
    AVAILABILITY = "availability"


class Operation(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


WATCHED: dict[type, Entity] = {
    PartnerRequest: Entity.PARTNER_REQUEST,
    SessionProposal: Entity.SESSION_PROPOSAL,
    GymSession: Entity.SESSION,
    CoordinationState: Entity.COORDINATION_STATE,
    AvailabilitySlot: Entity.AVAILABILITY,
}

# Bookkeeping columns that never make an update worth reporting on their own
IGNORED_COLUMNS = {"version", "updated_at"}


def _jsonable(value):
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def snapshot(obj) -> dict:
    """Loaded column values of an ORM object, JSON-safe.

    Reads the instance dict directly so no lazy load is triggered mid-flush.
    """
    state = inspect(obj)
    return {
        attr.key: _jsonable(state.dict.get(attr.key))
        for attr in state.mapper.column_attrs
        if attr.key != "version"
    }


def previous_values(obj) -> dict:
    """Column -> value before this flush, for columns that actually changed."""
    state = inspect(obj)
    changed = {}
    for attr in state.mapper.column_attrs:
        if attr.key in IGNORED_COLUMNS:
            continue
        history = state.attrs[attr.key].history
        if history.has_changes():
            changed[attr.key] = _jsonable(history.deleted[0]) if history.deleted else None
    return changed


def collect_changes(session: Session) -> list[dict]:
    rows = []
    now = utcnow()

    def add(obj, operation: Operation, changes: dict):
        rows.append({
            "entity": WATCHED[type(obj)].value,
            "operation": operation.value,
            "record": snapshot(obj),
            "changes": changes,
            "created_at": now,
            "attempts": 0,
        })

    for obj in session.new:
        if type(obj) in WATCHED:
            add(obj, Operation.INSERT, {})
    for obj in session.dirty:
        if type(obj) in WATCHED:
            changes = previous_values(obj)
            if changes:
                add(obj, Operation.UPDATE, changes)
    for obj in session.deleted:
        if type(obj) in WATCHED:
            add(obj, Operation.DELETE, {})
    return rows


@event.listens_for(Session, "after_flush")
def _record_changes(session: Session, flush_context) -> None:
    rows = collect_changes(session)
    if rows:
        session.connection().execute(insert(ChangeEvent), rows)
