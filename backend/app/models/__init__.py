"""Database models package."""

from app.models.user import User
from app.models.availability import AvailabilitySlot
from app.models.partner_request import PartnerRequest, PartnerRequestStatus
from app.models.session_proposal import SessionProposal, ProposalStatus
from app.models.gym_session import GymSession, SessionStatus
from app.models.coordination_state import CoordinationState, CoordinationPhase
from app.models.notification import Notification
from app.models.change_event import ChangeEvent

# Registers the after_flush hook that fills change_events
from app.core import change_capture  # noqa: E402,F401

__all__ = [
    "User",
    "AvailabilitySlot",
    "PartnerRequest",
    "PartnerRequestStatus",
    "SessionProposal",
    "ProposalStatus",
    "GymSession",
    "SessionStatus",
    "CoordinationState",
    "CoordinationPhase",
    "Notification",
    "ChangeEvent",
]
