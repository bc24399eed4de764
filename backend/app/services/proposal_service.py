"""Proposal negotiator - propose, accept/reject, counter and cancel sessions.

A proposal leaves `pending` exactly once. Every transition is an UPDATE
guarded by the row's version column, so when two requests race on the same
proposal the slower one fails with InvalidStateError and its transaction
(including any session it would have created) is rolled back.
"""

from datetime import date

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    InvalidDurationError,
    InvalidSlotError,
    InvalidStateError,
    NoPartnerError,
    NotFoundError,
    UnauthorizedError,
    flush_transition,
)
from app.core.timeslots import MIN_SESSION_UNITS, is_valid_range
from app.db.database import utcnow
from app.models.gym_session import GymSession, SessionStatus
from app.models.session_proposal import ProposalStatus, SessionProposal
from app.services.partner_service import partner_service

ALREADY_ANSWERED = "Proposal was already answered"


def validate_range(start_unit: int, end_unit: int) -> None:
    # end <= start counts as too short
    if end_unit - start_unit < MIN_SESSION_UNITS:
        raise InvalidDurationError()
    if not is_valid_range(start_unit, end_unit):
        raise InvalidSlotError()


class ProposalService:
    @staticmethod
    async def get_proposal(db: AsyncSession, proposal_id: int) -> SessionProposal:
        proposal = await db.get(SessionProposal, proposal_id)
        if proposal is None:
            raise NotFoundError(f"Proposal not found: {proposal_id}")
        return proposal

    @staticmethod
    async def _get_pending_for_partner(
        db: AsyncSession, proposal_id: int, user_identifier: str
    ) -> tuple[SessionProposal, int]:
        proposal = await proposal_service.get_proposal(db, proposal_id)
        user = await partner_service.find_by_identifier(db, user_identifier)
        if proposal.partner_id != user.id:
            raise UnauthorizedError("Only the proposal's recipient can respond to it")
        if not proposal.is_pending:
            raise InvalidStateError(f"Proposal already {proposal.status}")
        return proposal, user.id

    @staticmethod
    async def propose(
        db: AsyncSession,
        proposer_identifier: str,
        proposed_date: date,
        start_unit: int,
        end_unit: int,
        message: str | None = None,
    ) -> SessionProposal:
        proposer = await partner_service.find_by_identifier(db, proposer_identifier)
        if not proposer.has_partner:
            raise NoPartnerError()
        validate_range(start_unit, end_unit)

        proposal = SessionProposal(
            proposer_id=proposer.id,
            partner_id=proposer.partner_id,
            proposed_date=proposed_date,
            start_unit=start_unit,
            end_unit=end_unit,
            status=ProposalStatus.PENDING.value,
            message=message,
        )
        db.add(proposal)
        await db.flush()
        return proposal

    @staticmethod
    async def respond(
        db: AsyncSession,
        proposal_id: int,
        user_identifier: str,
        accept: bool,
        message: str | None = None,
    ) -> tuple[SessionProposal, GymSession | None]:
        """Accept (creating the confirmed session) or reject a pending proposal."""
        proposal, user_id = await proposal_service._get_pending_for_partner(db, proposal_id, user_identifier)

        proposal.status = (ProposalStatus.ACCEPTED if accept else ProposalStatus.REJECTED).value
        proposal.response_message = message
        proposal.responded_at = utcnow()
        await flush_transition(db, ALREADY_ANSWERED)

        if not accept:
            return proposal, None

        session = GymSession(
            participant_1_id=proposal.proposer_id,
            participant_2_id=proposal.partner_id,
            session_date=proposal.proposed_date,
            start_unit=proposal.start_unit,
            end_unit=proposal.end_unit,
            status=SessionStatus.CONFIRMED.value,
            proposal_id=proposal.id,
            created_by_id=user_id,
        )
        db.add(session)
        await flush_transition(db, ALREADY_ANSWERED)

        proposal.session_id = session.id
        await flush_transition(db, ALREADY_ANSWERED)
        return proposal, session

    @staticmethod
    async def counter_propose(
        db: AsyncSession,
        proposal_id: int,
        user_identifier: str,
        proposed_date: date,
        start_unit: int,
        end_unit: int,
        message: str | None = None,
    ) -> tuple[SessionProposal, SessionProposal]:
        """Close the original as counter_proposed and open a new one with roles swapped."""
        original, _ = await proposal_service._get_pending_for_partner(db, proposal_id, user_identifier)
        validate_range(start_unit, end_unit)

        original.status = ProposalStatus.COUNTER_PROPOSED.value
        original.response_message = message
        original.responded_at = utcnow()
        await flush_transition(db, ALREADY_ANSWERED)

        counter = SessionProposal(
            proposer_id=original.partner_id,
            partner_id=original.proposer_id,
            proposed_date=proposed_date,
            start_unit=start_unit,
            end_unit=end_unit,
            status=ProposalStatus.PENDING.value,
            message=message,
            parent_proposal_id=original.id,
        )
        db.add(counter)
        await db.flush()
        return original, counter

    @staticmethod
    async def cancel(db: AsyncSession, proposal_id: int, user_identifier: str) -> SessionProposal:
        proposal = await proposal_service.get_proposal(db, proposal_id)
        user = await partner_service.find_by_identifier(db, user_identifier)
        if proposal.proposer_id != user.id:
            raise UnauthorizedError("Only the proposer can cancel a proposal")
        if not proposal.is_pending:
            raise InvalidStateError(f"Proposal already {proposal.status}")

        proposal.status = ProposalStatus.CANCELLED.value
        proposal.responded_at = utcnow()
        await flush_transition(db, ALREADY_ANSWERED)
        return proposal

    @staticmethod
    async def list_proposals(
        db: AsyncSession, identifier: str, status: str | None = None
    ) -> list[SessionProposal]:
        """Proposals sent or received by the user, newest first."""
        user = await partner_service.find_by_identifier(db, identifier)
        query = select(SessionProposal).where(
            or_(SessionProposal.proposer_id == user.id, SessionProposal.partner_id == user.id)
        )
        if status:
            query = query.where(SessionProposal.status == status)
        result = await db.execute(
            query.order_by(SessionProposal.created_at.desc(), SessionProposal.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def negotiation_chain(db: AsyncSession, proposal_id: int) -> list[SessionProposal]:
        """Every proposal in the counter-proposal chain containing `proposal_id`, root first."""
        proposal = await proposal_service.get_proposal(db, proposal_id)

        chain = [proposal]
        while chain[0].parent_proposal_id is not None:
            parent = await db.get(SessionProposal, chain[0].parent_proposal_id)
            if parent is None:
                break
            chain.insert(0, parent)

        current = proposal
        while True:
            result = await db.execute(
                select(SessionProposal)
                .where(SessionProposal.parent_proposal_id == current.id)
                .order_by(SessionProposal.id)
                .limit(1)
            )
            child = result.scalar_one_or_none()
            if child is None:
                break
            chain.append(child)
            current = child
        return chain


proposal_service = ProposalService()
