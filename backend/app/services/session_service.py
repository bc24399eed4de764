"""Session service - list and cancel confirmed gym sessions."""

from datetime import date

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError, flush_transition
from app.db.database import utcnow
from app.models.gym_session import GymSession, SessionStatus
from app.services.partner_service import partner_service


class SessionService:
    @staticmethod
    async def get_session(db: AsyncSession, session_id: int) -> GymSession:
        session = await db.get(GymSession, session_id)
        if session is None:
            raise NotFoundError(f"Session not found: {session_id}")
        return session

    @staticmethod
    async def list_sessions(
        db: AsyncSession,
        identifier: str,
        status: str | None = None,
        upcoming: bool = False,
        today: date | None = None,
    ) -> list[GymSession]:
        """Sessions the user takes part in.

        Newest first by default; with `upcoming`, only confirmed sessions from
        today onwards, soonest first.
        """
        user = await partner_service.find_by_identifier(db, identifier)
        query = select(GymSession).where(
            or_(GymSession.participant_1_id == user.id, GymSession.participant_2_id == user.id)
        )

        if upcoming:
            query = query.where(
                GymSession.session_date >= (today or date.today()),
                GymSession.status == SessionStatus.CONFIRMED.value,
            ).order_by(GymSession.session_date, GymSession.start_unit, GymSession.id)
        else:
            if status:
                query = query.where(GymSession.status == status)
            query = query.order_by(
                GymSession.session_date.desc(), GymSession.start_unit.desc(), GymSession.id.desc()
            )

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def cancel(db: AsyncSession, session_id: int, user_identifier: str) -> GymSession:
        session = await session_service.get_session(db, session_id)
        user = await partner_service.find_by_identifier(db, user_identifier)

        if user.id not in session.participants and user.id != session.created_by_id:
            raise UnauthorizedError("Only a participant can cancel this session")
        if session.status != SessionStatus.CONFIRMED:
            raise InvalidStateError(f"Session already {session.status}")

        session.status = SessionStatus.CANCELLED.value
        session.cancelled_by_id = user.id
        session.cancelled_at = utcnow()
        await flush_transition(db, "Session was changed by another request")
        return session


session_service = SessionService()
