"""Coordination errors - each carries a stable `code` and the HTTP status to answer with."""

from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError


class CoordinationError(Exception):
    code = "coordination_error"
    status_code = 400

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


class NotFoundError(CoordinationError):
    """Record not found."""
    code = "not_found"
    status_code = 404


class InvalidStateError(CoordinationError):
    """Operation is not allowed in the record's current status."""
    code = "invalid_state"
    status_code = 409


class UnauthorizedError(CoordinationError):
    """Caller is not the party this record is addressed to."""
    code = "unauthorized"
    status_code = 403


class AlreadyPartnersError(CoordinationError):
    """Users are already partners."""
    code = "already_partners"
    status_code = 409


class DuplicateRequestError(CoordinationError):
    """A pending partner request already exists between these users."""
    code = "duplicate_request"
    status_code = 409


class InvalidDurationError(CoordinationError):
    """Session must be at least 2 hours long."""
    code = "invalid_duration"
    status_code = 422


class NoPartnerError(CoordinationError):
    """User has no linked partner."""
    code = "no_partner"
    status_code = 409


class InvalidSlotError(CoordinationError):
    """Time range must use units 0-47."""
    code = "invalid_slot"
    status_code = 422


def error_payload(exc: CoordinationError) -> dict[str, str]:
    return {"detail": exc.message, "code": exc.code}


async def coordination_error_handler(request: Request, exc: CoordinationError) -> JSONResponse:
    """FastAPI exception handler: map a CoordinationError to its HTTP response."""
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc))


async def flush_transition(
    db: AsyncSession,
    conflict: str = "Record was changed by another request",
    duplicate: CoordinationError | None = None,
) -> None:
    """Flush pending changes, translating lost races into coordination errors.

    A version mismatch on a guarded row raises InvalidStateError; a unique
    constraint violation raises `duplicate` when given. The caller's
    transaction is left for the session owner to roll back.
    """
    try:
        await db.flush()
    except StaleDataError as e:
        raise InvalidStateError(conflict) from e
    except IntegrityError as e:
        if duplicate is None:
            raise
        raise duplicate from e
