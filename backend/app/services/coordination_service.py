"""Coordination service - maintains the advisory phase label of a partner pair.

Only the change feed and the partner link write here; nothing in the request
path branches on the phase.
"""

from sqlalchemy import func, or_, and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import utcnow
from app.models.availability import AvailabilitySlot
from app.models.coordination_state import CoordinationPhase, CoordinationState
from app.models.session_proposal import ProposalStatus, SessionProposal


class CoordinationService:
    @staticmethod
    async def get_state(db: AsyncSession, user_a: int, user_b: int) -> CoordinationState | None:
        low, high = sorted((user_a, user_b))
        result = await db.execute(
            select(CoordinationState).where(
                CoordinationState.partner_1_id == low,
                CoordinationState.partner_2_id == high,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def ensure_state(db: AsyncSession, user_a: int, user_b: int) -> CoordinationState:
        """Get the pair's state, creating it in waiting_availability if missing."""
        state = await coordination_service.get_state(db, user_a, user_b)
        if state is None:
            low, high = sorted((user_a, user_b))
            state = CoordinationState(
                partner_1_id=low,
                partner_2_id=high,
                state=CoordinationPhase.WAITING_AVAILABILITY.value,
                active_proposals_count=0,
                completed_sessions_count=0,
            )
            db.add(state)
            await db.flush()
        return state

    @staticmethod
    async def reset(db: AsyncSession, user_a: int, user_b: int) -> CoordinationState:
        """Start a freshly linked pair over in waiting_availability."""
        state = await coordination_service.ensure_state(db, user_a, user_b)
        state.state = CoordinationPhase.WAITING_AVAILABILITY.value
        return state

    @staticmethod
    async def record_confirmed_session(db: AsyncSession, user_a: int, user_b: int) -> CoordinationState:
        state = await coordination_service.ensure_state(db, user_a, user_b)
        state.state = CoordinationPhase.SESSIONS_CONFIRMED.value
        state.completed_sessions_count = (state.completed_sessions_count or 0) + 1
        await db.flush()
        return state

    @staticmethod
    async def recount_active_proposals(db: AsyncSession, user_a: int, user_b: int) -> CoordinationState:
        """Set active_proposals_count to the pair's pending proposals, either direction."""
        state = await coordination_service.ensure_state(db, user_a, user_b)
        result = await db.execute(
            select(func.count(SessionProposal.id)).where(
                SessionProposal.status == ProposalStatus.PENDING.value,
                or_(
                    and_(SessionProposal.proposer_id == user_a, SessionProposal.partner_id == user_b),
                    and_(SessionProposal.proposer_id == user_b, SessionProposal.partner_id == user_a),
                ),
            )
        )
        count = result.scalar_one()
        if state.active_proposals_count != count:
            state.active_proposals_count = count
            await db.flush()
        return state

    @staticmethod
    async def refresh_availability(db: AsyncSession, user_a: int, user_b: int) -> CoordinationState:
        """Stamp the availability check and move between waiting and ready.

        Ready when both partners have at least one slot. A pair with
        confirmed sessions keeps that phase even if a partner clears theirs.
        """
        state = await coordination_service.ensure_state(db, user_a, user_b)
        result = await db.execute(
            select(func.count(func.distinct(AvailabilitySlot.user_id))).where(
                AvailabilitySlot.user_id.in_([user_a, user_b])
            )
        )
        both_ready = result.scalar_one() == 2

        if both_ready:
            if state.state == CoordinationPhase.WAITING_AVAILABILITY.value:
                state.state = CoordinationPhase.AVAILABILITY_READY.value
        elif state.state != CoordinationPhase.SESSIONS_CONFIRMED.value:
            state.state = CoordinationPhase.WAITING_AVAILABILITY.value

        state.last_availability_check = utcnow()
        await db.flush()
        return state


coordination_service = CoordinationService()
