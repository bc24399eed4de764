"""Tests for the proposal negotiator, including racing responses."""

from datetime import date

import pytest
from sqlalchemy import func, select

from app.core.errors import (
    InvalidDurationError,
    InvalidSlotError,
    InvalidStateError,
    NoPartnerError,
    NotFoundError,
    UnauthorizedError,
)
from app.models.gym_session import GymSession, SessionStatus
from app.models.session_proposal import ProposalStatus, SessionProposal
from app.services.proposal_service import proposal_service

THURSDAY = date(2024, 1, 4)


async def _count_sessions(session_factory) -> int:
    async with session_factory() as db:
        return (await db.execute(select(func.count(GymSession.id)))).scalar_one()


# ---------------------------------------------------------------------------
# Proposing
# ---------------------------------------------------------------------------


async def test_propose_to_partner(db, partners):
    alice, bob = partners
    proposal = await proposal_service.propose(db, alice.email, THURSDAY, 36, 40, "Leg day")

    assert proposal.status == ProposalStatus.PENDING
    assert proposal.proposer_id == alice.id
    assert proposal.partner_id == bob.id
    assert proposal.duration_units == 4
    assert proposal.parent_proposal_id is None


async def test_propose_without_partner(db, make_user):
    loner = await make_user("Loner")
    with pytest.raises(NoPartnerError):
        await proposal_service.propose(db, loner.email, THURSDAY, 36, 40)


@pytest.mark.parametrize(
    "start, end, error",
    [
        (36, 39, InvalidDurationError),
        (36, 36, InvalidDurationError),
        (40, 36, InvalidDurationError),
        (44, 48, InvalidSlotError),
        (-1, 4, InvalidSlotError),
    ],
)
async def test_propose_validates_time_range(db, partners, start, end, error):
    alice, _ = partners
    with pytest.raises(error):
        await proposal_service.propose(db, alice.email, THURSDAY, start, end)


# ---------------------------------------------------------------------------
# Responding
# ---------------------------------------------------------------------------


async def test_accept_creates_confirmed_session(db, partners):
    alice, bob = partners
    proposal = await proposal_service.propose(db, alice.email, THURSDAY, 36, 40)

    accepted, session = await proposal_service.respond(db, proposal.id, bob.email, accept=True, message="See you")

    assert accepted.status == ProposalStatus.ACCEPTED
    assert accepted.response_message == "See you"
    assert accepted.session_id == session.id
    assert session.status == SessionStatus.CONFIRMED
    assert session.participants == [alice.id, bob.id]
    assert session.session_date == THURSDAY
    assert (session.start_unit, session.end_unit) == (36, 40)
    assert session.proposal_id == proposal.id
    assert session.created_by_id == bob.id


async def test_reject_creates_no_session(db, partners, session_factory):
    alice, bob = partners
    proposal = await proposal_service.propose(db, alice.email, THURSDAY, 36, 40)

    rejected, session = await proposal_service.respond(db, proposal.id, bob.email, accept=False)
    await db.commit()

    assert rejected.status == ProposalStatus.REJECTED
    assert session is None
    assert await _count_sessions(session_factory) == 0


async def test_only_partner_can_respond(db, partners):
    alice, _ = partners
    proposal = await proposal_service.propose(db, alice.email, THURSDAY, 36, 40)
    with pytest.raises(UnauthorizedError):
        await proposal_service.respond(db, proposal.id, alice.email, accept=True)


async def test_terminal_proposal_cannot_be_answered_again(db, partners):
    alice, bob = partners
    proposal = await proposal_service.propose(db, alice.email, THURSDAY, 36, 40)
    await proposal_service.respond(db, proposal.id, bob.email, accept=True)

    with pytest.raises(InvalidStateError):
        await proposal_service.respond(db, proposal.id, bob.email, accept=True)
    with pytest.raises(InvalidStateError):
        await proposal_service.counter_propose(db, proposal.id, bob.email, THURSDAY, 20, 24)


async def test_respond_to_unknown_proposal(db, partners):
    _, bob = partners
    with pytest.raises(NotFoundError):
        await proposal_service.respond(db, 999, bob.email, accept=True)


async def test_racing_responses_create_exactly_one_session(partners, session_factory):
    """Two requests read the same pending proposal; only the first write wins."""
    alice, bob = partners
    async with session_factory() as db:
        proposal = await proposal_service.propose(db, alice.email, THURSDAY, 36, 40)
        await db.commit()

    async with session_factory() as first, session_factory() as second:
        # The slower request has already read the proposal as pending
        stale = await second.get(SessionProposal, proposal.id)
        assert stale.is_pending

        await proposal_service.respond(first, proposal.id, bob.email, accept=True)
        await first.commit()

        with pytest.raises(InvalidStateError):
            await proposal_service.respond(second, proposal.id, bob.email, accept=True)
        await second.rollback()

    async with session_factory() as db:
        final = await db.get(SessionProposal, proposal.id)
        assert final.status == ProposalStatus.ACCEPTED
    assert await _count_sessions(session_factory) == 1


async def test_racing_accept_and_reject(partners, session_factory):
    alice, bob = partners
    async with session_factory() as db:
        proposal = await proposal_service.propose(db, alice.email, THURSDAY, 36, 40)
        await db.commit()

    async with session_factory() as rejecting, session_factory() as accepting:
        await accepting.get(SessionProposal, proposal.id)

        await proposal_service.respond(rejecting, proposal.id, bob.email, accept=False)
        await rejecting.commit()

        with pytest.raises(InvalidStateError):
            await proposal_service.respond(accepting, proposal.id, bob.email, accept=True)
        await accepting.rollback()

    async with session_factory() as db:
        assert (await db.get(SessionProposal, proposal.id)).status == ProposalStatus.REJECTED
    assert await _count_sessions(session_factory) == 0


# ---------------------------------------------------------------------------
# Counter-proposals
# ---------------------------------------------------------------------------


async def test_counter_proposal_swaps_roles(db, partners):
    alice, bob = partners
    original = await proposal_service.propose(db, alice.email, THURSDAY, 36, 40)

    closed, counter = await proposal_service.counter_propose(
        db, original.id, bob.email, date(2024, 1, 6), 20, 24, "Saturday morning?"
    )

    assert closed.id == original.id
    assert closed.status == ProposalStatus.COUNTER_PROPOSED
    assert counter.status == ProposalStatus.PENDING
    assert counter.proposer_id == bob.id
    assert counter.partner_id == alice.id
    assert counter.parent_proposal_id == original.id
    assert counter.proposed_date == date(2024, 1, 6)
    assert counter.message == "Saturday morning?"


async def test_counter_requires_partner_and_duration(db, partners):
    alice, bob = partners
    original = await proposal_service.propose(db, alice.email, THURSDAY, 36, 40)

    with pytest.raises(UnauthorizedError):
        await proposal_service.counter_propose(db, original.id, alice.email, THURSDAY, 20, 24)
    with pytest.raises(InvalidDurationError):
        await proposal_service.counter_propose(db, original.id, bob.email, THURSDAY, 20, 22)
    assert original.is_pending


async def test_negotiation_chain_is_root_first(db, partners):
    alice, bob = partners
    first = await proposal_service.propose(db, alice.email, THURSDAY, 36, 40)
    _, second = await proposal_service.counter_propose(db, first.id, bob.email, THURSDAY, 34, 38)
    _, third = await proposal_service.counter_propose(db, second.id, alice.email, THURSDAY, 35, 39)

    expected = [first.id, second.id, third.id]
    for proposal_id in expected:
        chain = await proposal_service.negotiation_chain(db, proposal_id)
        assert [p.id for p in chain] == expected


# ---------------------------------------------------------------------------
# Cancelling and listing
# ---------------------------------------------------------------------------


async def test_cancel_by_proposer_only(db, partners):
    alice, bob = partners
    proposal = await proposal_service.propose(db, alice.email, THURSDAY, 36, 40)

    with pytest.raises(UnauthorizedError):
        await proposal_service.cancel(db, proposal.id, bob.email)

    cancelled = await proposal_service.cancel(db, proposal.id, alice.email)
    assert cancelled.status == ProposalStatus.CANCELLED

    with pytest.raises(InvalidStateError):
        await proposal_service.cancel(db, proposal.id, alice.email)
    with pytest.raises(InvalidStateError):
        await proposal_service.respond(db, proposal.id, bob.email, accept=True)


async def test_list_proposals_both_directions(db, partners):
    alice, bob = partners
    first = await proposal_service.propose(db, alice.email, THURSDAY, 36, 40)
    second = await proposal_service.propose(db, bob.email, THURSDAY, 20, 24)
    await proposal_service.cancel(db, second.id, bob.email)

    assert {p.id for p in await proposal_service.list_proposals(db, alice.email)} == {first.id, second.id}
    pending = await proposal_service.list_proposals(db, bob.email, status="pending")
    assert [p.id for p in pending] == [first.id]
