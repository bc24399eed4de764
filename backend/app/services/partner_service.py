"""Partner directory - user lookup, partner requests and the partner link."""

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    AlreadyPartnersError,
    DuplicateRequestError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    flush_transition,
)
from app.db.database import utcnow
from app.models.partner_request import PartnerRequest, PartnerRequestStatus, pair_key
from app.models.user import User
from app.services.coordination_service import coordination_service

# Relationship status when no request ever existed between two users
NO_RELATIONSHIP = "none"
PARTNERS = "partners"


class PartnerService:
    @staticmethod
    async def find_by_identifier(db: AsyncSession, identifier: str) -> User:
        """Resolve a user by email, falling back to Telegram id for numeric identifiers."""
        identifier = identifier.strip()
        result = await db.execute(select(User).where(User.email == identifier.lower()))
        user = result.scalar_one_or_none()
        if user is None and identifier.isdigit():
            result = await db.execute(select(User).where(User.telegram_id == identifier))
            user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(f"User not found: {identifier}")
        return user

    @staticmethod
    async def register_user(
        db: AsyncSession, name: str, email: str, telegram_id: str | None = None
    ) -> User:
        user = User(name=name, email=email.strip().lower(), telegram_id=telegram_id)
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            raise InvalidStateError("A user with this email or Telegram id already exists") from e
        return user

    @staticmethod
    async def get_request(db: AsyncSession, request_id: int) -> PartnerRequest:
        request = await db.get(PartnerRequest, request_id)
        if request is None:
            raise NotFoundError(f"Partner request not found: {request_id}")
        return request

    @staticmethod
    async def send_request(
        db: AsyncSession,
        requester_identifier: str,
        target_identifier: str,
        message: str | None = None,
    ) -> PartnerRequest:
        requester = await partner_service.find_by_identifier(db, requester_identifier)
        target = await partner_service.find_by_identifier(db, target_identifier)

        if requester.id == target.id:
            raise InvalidStateError("Cannot send a partner request to yourself")
        if requester.partner_id == target.id:
            raise AlreadyPartnersError()
        if requester.has_partner or target.has_partner:
            raise AlreadyPartnersError("One of these users already has a gym partner")

        key = pair_key(requester.id, target.id)
        result = await db.execute(
            select(PartnerRequest.id).where(
                PartnerRequest.pair_key == key,
                PartnerRequest.status == PartnerRequestStatus.PENDING.value,
            )
        )
        if result.first() is not None:
            raise DuplicateRequestError()

        request = PartnerRequest(
            requester_id=requester.id,
            target_id=target.id,
            pair_key=key,
            status=PartnerRequestStatus.PENDING.value,
            message=message,
        )
        db.add(request)
        # The partial unique index catches a concurrent request the check above missed
        await flush_transition(db, duplicate=DuplicateRequestError())
        return request

    @staticmethod
    async def respond(
        db: AsyncSession,
        request_id: int,
        responder_identifier: str,
        accept: bool,
        message: str | None = None,
    ) -> PartnerRequest:
        """Accept or reject a pending request; accepting links both users."""
        request = await partner_service.get_request(db, request_id)
        responder = await partner_service.find_by_identifier(db, responder_identifier)

        if request.target_id != responder.id:
            raise UnauthorizedError("Only the requested user can respond to this request")
        if not request.is_pending:
            raise InvalidStateError(f"Partner request already {request.status}")

        if accept:
            requester = await db.get(User, request.requester_id)
            if requester.partner_id not in (None, responder.id) or responder.partner_id not in (
                None,
                requester.id,
            ):
                raise AlreadyPartnersError("One of these users already has a gym partner")

            # Before the guarded changes: its lookup would autoflush them
            await coordination_service.reset(db, requester.id, responder.id)
            request.status = PartnerRequestStatus.ACCEPTED.value
            requester.partner_id = responder.id
            responder.partner_id = requester.id
        else:
            request.status = PartnerRequestStatus.REJECTED.value

        request.response_message = message
        request.responded_at = utcnow()
        # Request and both users are version-checked in one flush
        await flush_transition(db, "Partner request was already answered")
        return request

    @staticmethod
    async def list_requests(
        db: AsyncSession,
        identifier: str,
        direction: str = "all",
        status: str | None = None,
    ) -> list[PartnerRequest]:
        user = await partner_service.find_by_identifier(db, identifier)

        query = select(PartnerRequest)
        if direction == "incoming":
            query = query.where(PartnerRequest.target_id == user.id)
        elif direction == "outgoing":
            query = query.where(PartnerRequest.requester_id == user.id)
        else:
            query = query.where(
                or_(PartnerRequest.target_id == user.id, PartnerRequest.requester_id == user.id)
            )
        if status:
            query = query.where(PartnerRequest.status == status)

        result = await db.execute(
            query.order_by(PartnerRequest.created_at.desc(), PartnerRequest.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def relationship_status(
        db: AsyncSession, identifier_1: str, identifier_2: str
    ) -> tuple[str, PartnerRequest | None]:
        """'partners', the latest request's status, or 'none'."""
        user_1 = await partner_service.find_by_identifier(db, identifier_1)
        user_2 = await partner_service.find_by_identifier(db, identifier_2)

        result = await db.execute(
            select(PartnerRequest)
            .where(PartnerRequest.pair_key == pair_key(user_1.id, user_2.id))
            .order_by(PartnerRequest.created_at.desc(), PartnerRequest.id.desc())
            .limit(1)
        )
        latest = result.scalar_one_or_none()

        if user_1.partner_id == user_2.id:
            return PARTNERS, latest
        if latest is None:
            return NO_RELATIONSHIP, None
        return latest.status, latest


partner_service = PartnerService()
