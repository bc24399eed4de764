"""Tests for confirmed sessions - listing and cancellation."""

from datetime import date

import pytest

from app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError
from app.models.gym_session import SessionStatus
from app.services.proposal_service import proposal_service
from app.services.session_service import session_service

TODAY = date(2024, 1, 3)


async def _confirm(db, proposer, partner, day: date, start: int = 36):
    proposal = await proposal_service.propose(db, proposer.email, day, start, start + 4)
    _, session = await proposal_service.respond(db, proposal.id, partner.email, accept=True)
    return session


async def test_list_sessions_newest_first(db, partners):
    alice, bob = partners
    early = await _confirm(db, alice, bob, date(2024, 1, 1))
    late = await _confirm(db, bob, alice, date(2024, 1, 10))

    sessions = await session_service.list_sessions(db, alice.email)
    assert [s.id for s in sessions] == [late.id, early.id]


async def test_list_upcoming_sessions(db, partners):
    alice, bob = partners
    await _confirm(db, alice, bob, date(2024, 1, 1))
    later = await _confirm(db, alice, bob, date(2024, 1, 10))
    sooner = await _confirm(db, alice, bob, date(2024, 1, 5))
    cancelled = await _confirm(db, alice, bob, date(2024, 1, 6))
    await session_service.cancel(db, cancelled.id, bob.email)

    upcoming = await session_service.list_sessions(db, bob.email, upcoming=True, today=TODAY)
    assert [s.id for s in upcoming] == [sooner.id, later.id]


async def test_list_by_status(db, partners):
    alice, bob = partners
    kept = await _confirm(db, alice, bob, date(2024, 1, 4))
    dropped = await _confirm(db, alice, bob, date(2024, 1, 5))
    await session_service.cancel(db, dropped.id, alice.email)

    confirmed = await session_service.list_sessions(db, alice.email, status="confirmed")
    assert [s.id for s in confirmed] == [kept.id]


async def test_cancel_records_who_cancelled(db, partners):
    alice, bob = partners
    session = await _confirm(db, alice, bob, date(2024, 1, 4))

    cancelled = await session_service.cancel(db, session.id, alice.email)

    assert cancelled.status == SessionStatus.CANCELLED
    assert cancelled.cancelled_by_id == alice.id
    assert cancelled.cancelled_at is not None


async def test_cancel_twice(db, partners):
    alice, bob = partners
    session = await _confirm(db, alice, bob, date(2024, 1, 4))
    await session_service.cancel(db, session.id, alice.email)

    with pytest.raises(InvalidStateError):
        await session_service.cancel(db, session.id, bob.email)


async def test_outsider_cannot_cancel(db, partners, make_user):
    alice, bob = partners
    mallory = await make_user("Mallory")
    session = await _confirm(db, alice, bob, date(2024, 1, 4))

    with pytest.raises(UnauthorizedError):
        await session_service.cancel(db, session.id, mallory.email)


async def test_cancel_unknown_session(db, partners):
    alice, _ = partners
    with pytest.raises(NotFoundError):
        await session_service.cancel(db, 999, alice.email)
