"""Notifier - turns one captured change into pushes, notifications and side effects.

Called by the change feed inside the event's transaction. It resolves the
affected users, builds the typed event pushed to each of them, appends
durable Notification rows for meaningful changes and keeps the pair's
coordination state up to date. It never talks to connections itself.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.change_capture import Entity, Operation
from app.core.timeslots import format_unit
from app.db.database import utcnow
from app.models.change_event import ChangeEvent
from app.models.coordination_state import CoordinationPhase
from app.models.gym_session import SessionStatus
from app.models.notification import Notification
from app.models.partner_request import PartnerRequestStatus
from app.models.session_proposal import ProposalStatus
from app.models.user import User
from app.services.coordination_service import coordination_service
from app.services.suggestion_cache import SuggestionCache

logger = logging.getLogger(__name__)

# Notification type -> (title, message template)
# coordination_update is logged for affected users without a specific notice
NOTICES: dict[str, tuple[str, str]] = {
    "partner_request_received": ("New Partner Request", "{requester} wants to be your gym partner!"),
    "partner_request_accepted": ("Partner Request Accepted", "{target} accepted your partner request!"),
    "partner_request_rejected": ("Partner Request Declined", "Your partner request was declined."),
    "session_proposed": ("New Session Proposal", "{proposer} proposed a gym session for {when}"),
    "session_counter_proposed": ("Counter Proposal", "{proposer} suggested {when} instead"),
    "session_proposal_accepted": ("Session Proposal Accepted", "Your session proposal was accepted! Session confirmed."),
    "session_proposal_rejected": ("Session Proposal Declined", "Your session proposal was declined."),
    "session_proposal_cancelled": ("Session Proposal Withdrawn", "{proposer} withdrew the proposal for {when}"),
    "session_confirmed": ("Session Confirmed", "Gym session confirmed for {when}"),
    "session_cancelled": ("Session Cancelled", "Gym session for {when} has been cancelled"),
    "availability_updated": (
        "Availability Updated",
        "{owner} updated their availability. New session suggestions may be available!",
    ),
    "availability_coordination_ready": (
        "Ready to Schedule!",
        "You and {partner} both have availability set. Check your session suggestions!",
    ),
    "coordination_update": (
        "Coordination Update",
        "There was an update to your gym partner coordination",
    ),
}


@dataclass
class Outbound:
    """One message for one user, pushed after the event's transaction commits."""
    user_id: int
    message: dict
    notification: Notification
    deliver: bool = False


def _party(user: User | None) -> dict | None:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


def _when(record: dict, date_key: str) -> str:
    return f"{record[date_key]} {format_unit(record['start_unit'])}-{format_unit(record['end_unit'])}"


class Notifier:
    def __init__(self, cache: SuggestionCache | None = None):
        self.cache = cache
        self._handlers = {
            Entity.PARTNER_REQUEST.value: self._partner_request,
            Entity.SESSION_PROPOSAL.value: self._session_proposal,
            Entity.SESSION.value: self._session,
            Entity.COORDINATION_STATE.value: self._coordination_state,
            Entity.AVAILABILITY.value: self._availability,
        }

    async def handle(self, db: AsyncSession, event: ChangeEvent) -> list[Outbound]:
        handler = self._handlers.get(event.entity)
        if handler is None:
            logger.warning("No handler for change event %s (entity=%s)", event.id, event.entity)
            return []
        return await handler(db, event)

    # --- building blocks ---

    @staticmethod
    def _payload(event_type: str, event: ChangeEvent, record_key: str, **parties) -> dict:
        return {
            "type": event_type,
            "event": event.operation,
            record_key: event.record,
            "changes": event.changes or {},
            **parties,
            "timestamp": utcnow().isoformat(),
        }

    @staticmethod
    def _notify(db: AsyncSession, user: User, kind: str, payload: dict, **fields) -> Notification:
        title, template = NOTICES[kind]
        notification = Notification(
            user_id=user.id,
            type=kind,
            title=title,
            message=template.format(**fields),
            payload=payload,
            created_at=utcnow(),
        )
        db.add(notification)
        return notification

    def _fan_out(
        self,
        db: AsyncSession,
        users: list[User | None],
        message: dict,
        notices: dict[int, Notification],
        link: dict,
    ) -> list[Outbound]:
        """One push and one durable row per affected user."""
        outbound = []
        for user in users:
            if user is None:
                continue
            notification = notices.get(user.id)
            body = dict(message)
            if notification is None:
                notification = self._notify(db, user, "coordination_update", link)
                deliver = False
            else:
                body["notification"] = {
                    "type": notification.type,
                    "title": notification.title,
                    "message": notification.message,
                }
                deliver = True
            outbound.append(Outbound(user_id=user.id, message=body, notification=notification, deliver=deliver))
        return outbound

    @staticmethod
    def _status_changed(event: ChangeEvent, field: str = "status") -> bool:
        return event.operation == Operation.UPDATE.value and field in (event.changes or {})

    # --- per entity ---

    async def _partner_request(self, db: AsyncSession, event: ChangeEvent) -> list[Outbound]:
        record = event.record
        requester = await db.get(User, record["requester_id"])
        target = await db.get(User, record["target_id"])
        message = self._payload(
            "partner_request_update", event, "request",
            requester=_party(requester), target=_party(target),
        )

        notices: dict[int, Notification] = {}
        names = {
            "requester": requester.name if requester else "Someone",
            "target": target.name if target else "Your gym buddy",
        }
        link = {"partner_request_id": record["id"]}
        status = record["status"]

        if event.operation == Operation.INSERT.value and status == PartnerRequestStatus.PENDING and target:
            notices[target.id] = self._notify(db, target, "partner_request_received", link, **names)
        elif self._status_changed(event) and requester:
            if status == PartnerRequestStatus.ACCEPTED:
                notices[requester.id] = self._notify(db, requester, "partner_request_accepted", link, **names)
                if target:
                    await coordination_service.refresh_availability(db, requester.id, target.id)
            elif status == PartnerRequestStatus.REJECTED:
                notices[requester.id] = self._notify(db, requester, "partner_request_rejected", link, **names)

        outbound = self._fan_out(db, [requester, target], message, notices, link)
        await db.flush()
        return outbound

    async def _session_proposal(self, db: AsyncSession, event: ChangeEvent) -> list[Outbound]:
        record = event.record
        proposer = await db.get(User, record["proposer_id"])
        partner = await db.get(User, record["partner_id"])
        message = self._payload(
            "session_proposal_update", event, "proposal",
            proposer=_party(proposer), partner=_party(partner),
        )

        notices: dict[int, Notification] = {}
        fields = {
            "proposer": proposer.name if proposer else "Your gym buddy",
            "when": _when(record, "proposed_date"),
        }
        link = {"session_proposal_id": record["id"]}
        status = record["status"]

        if event.operation == Operation.INSERT.value and partner:
            kind = "session_counter_proposed" if record.get("parent_proposal_id") else "session_proposed"
            notices[partner.id] = self._notify(db, partner, kind, link, **fields)
        elif self._status_changed(event):
            if status == ProposalStatus.ACCEPTED and proposer:
                notices[proposer.id] = self._notify(db, proposer, "session_proposal_accepted", link, **fields)
            elif status == ProposalStatus.REJECTED and proposer:
                notices[proposer.id] = self._notify(db, proposer, "session_proposal_rejected", link, **fields)
            elif status == ProposalStatus.CANCELLED and partner:
                notices[partner.id] = self._notify(db, partner, "session_proposal_cancelled", link, **fields)
            # counter_proposed: the new proposal's INSERT carries the notice

        if event.operation != Operation.DELETE.value:
            pair = (record["proposer_id"], record["partner_id"])
            if self._status_changed(event) and status == ProposalStatus.ACCEPTED:
                await coordination_service.record_confirmed_session(db, *pair)
            await coordination_service.recount_active_proposals(db, *pair)

        outbound = self._fan_out(db, [proposer, partner], message, notices, link)
        await db.flush()
        return outbound

    async def _session(self, db: AsyncSession, event: ChangeEvent) -> list[Outbound]:
        record = event.record
        first = await db.get(User, record["participant_1_id"])
        second = await db.get(User, record["participant_2_id"])
        message = self._payload(
            "session_update", event, "session",
            participants=[p for p in (_party(first), _party(second)) if p],
        )

        kind = None
        if event.operation == Operation.INSERT.value:
            kind = "session_confirmed"
        elif self._status_changed(event) and record["status"] == SessionStatus.CANCELLED:
            kind = "session_cancelled"

        notices: dict[int, Notification] = {}
        link = {"session_id": record["id"]}
        if kind:
            for user in (first, second):
                if user:
                    notices[user.id] = self._notify(db, user, kind, link, when=_when(record, "session_date"))

        outbound = self._fan_out(db, [first, second], message, notices, link)
        await db.flush()
        return outbound

    async def _coordination_state(self, db: AsyncSession, event: ChangeEvent) -> list[Outbound]:
        record = event.record
        first = await db.get(User, record["partner_1_id"])
        second = await db.get(User, record["partner_2_id"])
        message = self._payload(
            "coordination_state_update", event, "state",
            partners=[p for p in (_party(first), _party(second)) if p],
        )

        notices: dict[int, Notification] = {}
        became_ready = (
            self._status_changed(event, "state")
            and record["state"] == CoordinationPhase.AVAILABILITY_READY
        )
        link = {"coordination_state_id": record["id"]}
        if became_ready and first and second:
            notices[first.id] = self._notify(db, first, "availability_coordination_ready", link, partner=second.name)
            notices[second.id] = self._notify(db, second, "availability_coordination_ready", link, partner=first.name)

        outbound = self._fan_out(db, [first, second], message, notices, link)
        await db.flush()
        return outbound

    async def _availability(self, db: AsyncSession, event: ChangeEvent) -> list[Outbound]:
        owner = await db.get(User, event.record["user_id"])
        if owner is None:
            return []
        partner = await db.get(User, owner.partner_id) if owner.partner_id else None
        message = self._payload(
            "availability_update", event, "slot",
            user=_party(owner), partner=_party(partner),
        )

        notices: dict[int, Notification] = {}
        link = {"availability_user_id": owner.id}
        if partner is not None:
            notices[partner.id] = self._notify(db, partner, "availability_updated", link, owner=owner.name)
            await coordination_service.refresh_availability(db, owner.id, partner.id)
            if self.cache is not None:
                await self.cache.invalidate(owner.id, partner.id)

        outbound = self._fan_out(db, [owner, partner], message, notices, link)
        await db.flush()
        return outbound
