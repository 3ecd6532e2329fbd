"""Status transition tables for buddy relations and journey participants.

Each table maps ``(current status, action)`` to the next status, to ``None``
when the row should be deleted, or to a :class:`Reject` naming why the move is
not allowed. ``current`` is ``None`` when there is no row yet.
"""
import enum
from typing import NamedTuple, Optional, Union

from .errors import ResultStatus, ServiceError, invalid
from .models import RequestStatus


class Action(str, enum.Enum):
    SEND = "send"
    REQUEST_JOIN = "request_join"
    ACCEPT = "accept"
    REJECT = "reject"
    BLOCK = "block"
    REMOVE = "remove"


class Reject(NamedTuple):
    status: ResultStatus
    message: str


Outcome = Union[RequestStatus, None, Reject]


class TransitionTable(NamedTuple):
    name: str
    transitions: dict[tuple[Optional[RequestStatus], Action], Outcome]
    # Used when a (status, action) pair is not listed
    defaults: dict[Action, Reject]


_MISSING = object()

P, A, R, B = RequestStatus.PENDING, RequestStatus.ACCEPTED, RequestStatus.REJECTED, RequestStatus.BLOCKED

_BUDDY_NOT_FOUND = Reject(ResultStatus.RESOURCE_NOT_FOUND, "Buddy connection not found")
_BUDDY_ANSWERED = Reject(ResultStatus.VALIDATION_ERROR, "This buddy request has already been answered")

BUDDY = TransitionTable(
    name="buddy",
    transitions={
        (None, Action.SEND): P,
        # Re-request after a rejection reuses the existing row and its ordering.
        (R, Action.SEND): P,
        (P, Action.SEND): Reject(ResultStatus.VALIDATION_ERROR, "A buddy request is already pending"),
        (A, Action.SEND): Reject(ResultStatus.VALIDATION_ERROR, "You are already buddies"),
        (B, Action.SEND): Reject(ResultStatus.VALIDATION_ERROR, "Buddy request not allowed for this user"),
        (P, Action.ACCEPT): A,
        (P, Action.REJECT): R,
        (A, Action.REMOVE): None,
        (A, Action.BLOCK): B,
    },
    defaults={
        Action.SEND: Reject(ResultStatus.VALIDATION_ERROR, "Buddy request not allowed"),
        Action.ACCEPT: _BUDDY_ANSWERED,
        Action.REJECT: _BUDDY_ANSWERED,
        Action.BLOCK: _BUDDY_NOT_FOUND,
        Action.REMOVE: _BUDDY_NOT_FOUND,
    },
)

_JOIN_HANDLED = Reject(ResultStatus.INVALID_OPERATION, "This join request has already been handled")

PARTICIPANT = TransitionTable(
    name="participant",
    transitions={
        (None, Action.REQUEST_JOIN): P,
        (R, Action.REQUEST_JOIN): P,
        (P, Action.REQUEST_JOIN): Reject(ResultStatus.INVALID_OPERATION, "A join request is already pending"),
        (A, Action.REQUEST_JOIN): Reject(ResultStatus.INVALID_OPERATION, "You are already part of this journey"),
        (B, Action.REQUEST_JOIN): Reject(ResultStatus.INVALID_OPERATION, "You cannot join this journey"),
        (P, Action.ACCEPT): A,
        (P, Action.REJECT): R,
        (P, Action.BLOCK): B,
    },
    defaults={
        Action.REQUEST_JOIN: Reject(ResultStatus.INVALID_OPERATION, "You cannot join this journey"),
        Action.ACCEPT: _JOIN_HANDLED,
        Action.REJECT: _JOIN_HANDLED,
        Action.BLOCK: _JOIN_HANDLED,
    },
)

_RESPONSE_ACTIONS = {
    RequestStatus.ACCEPTED: Action.ACCEPT,
    RequestStatus.REJECTED: Action.REJECT,
    RequestStatus.BLOCKED: Action.BLOCK,
}


def response_action(status: RequestStatus) -> Action:
    """Map the status a caller answers a request with onto a table action."""
    try:
        return _RESPONSE_ACTIONS[status]
    except KeyError:
        raise invalid(f"A request cannot be answered with status {status.value}") from None


def lookup(table: TransitionTable, current: Optional[RequestStatus], action: Action) -> Outcome:
    outcome = table.transitions.get((current, action), _MISSING)
    if outcome is _MISSING:
        return table.defaults.get(
            action, Reject(ResultStatus.INVALID_OPERATION, f"Action {action.value} is not allowed")
        )
    return outcome


def apply(table: TransitionTable, current: Optional[RequestStatus], action: Action) -> Optional[RequestStatus]:
    """Return the next status (``None`` meaning delete) or raise ServiceError."""
    outcome = lookup(table, current, action)
    if isinstance(outcome, Reject):
        raise ServiceError(outcome.status, outcome.message)
    return outcome

