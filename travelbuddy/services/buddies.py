import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from ..errors import invalid, not_found
from ..models import Buddy, RequestStatus, User, ensure_utc, utcnow
from ..transitions import BUDDY, Action, apply
from .lookups import find_relation, require_user


logger = logging.getLogger("travelbuddy.buddies")


@dataclass(frozen=True)
class BuddyRow:
    requester_id: int
    requester_name: str
    addressee_id: int
    addressee_name: str
    status: RequestStatus
    requested_at: datetime


def _relation_rows(db: Session, *criteria) -> list[BuddyRow]:
    requester = aliased(User)
    addressee = aliased(User)
    stmt = (
        select(
            Buddy.requester_id,
            requester.username.label("requester_name"),
            Buddy.addressee_id,
            addressee.username.label("addressee_name"),
            Buddy.status,
            Buddy.requested_at,
        )
        .join(requester, requester.id == Buddy.requester_id)
        .join(addressee, addressee.id == Buddy.addressee_id)
        .where(*criteria)
        .order_by(Buddy.requested_at.desc())
    )
    rows = db.execute(stmt).mappings().all()
    return [BuddyRow(**{**row, "requested_at": ensure_utc(row["requested_at"])}) for row in rows]


def send_request(db: Session, requester_id: int, addressee_id: int) -> str:
    if requester_id == addressee_id:
        raise invalid("Cannot add yourself as a buddy")
    require_user(db, requester_id)
    require_user(db, addressee_id, "Addressee not found")

    relation = find_relation(db, requester_id, addressee_id)
    next_status = apply(BUDDY, relation.status if relation else None, Action.SEND)
    if relation is None:
        db.add(
            Buddy(
                requester_id=requester_id,
                addressee_id=addressee_id,
                status=next_status,
                requested_at=utcnow(),
            )
        )
    else:
        relation.status = next_status
        relation.requested_at = utcnow()

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise invalid("A buddy request is already pending") from None

    logger.info("User %s sent a buddy request to user %s", requester_id, addressee_id)
    return "Buddy request sent"


def respond_to_request(db: Session, addressee_id: int, requester_id: int, status: RequestStatus) -> str:
    if status not in (RequestStatus.ACCEPTED, RequestStatus.REJECTED):
        raise invalid("A buddy request can only be accepted or rejected")

    relation = db.get(Buddy, {"requester_id": requester_id, "addressee_id": addressee_id})
    if relation is None:
        raise not_found("Buddy request not found")

    action = Action.ACCEPT if status == RequestStatus.ACCEPTED else Action.REJECT
    relation.status = apply(BUDDY, relation.status, action)
    db.commit()

    logger.info("User %s %s the buddy request from user %s", addressee_id, status.value.lower(), requester_id)
    return f"Buddy request {status.value.lower()}"


def get_buddies(db: Session, user_id: int) -> list[BuddyRow]:
    require_user(db, user_id)
    return _relation_rows(
        db,
        Buddy.status == RequestStatus.ACCEPTED,
        or_(Buddy.requester_id == user_id, Buddy.addressee_id == user_id),
    )


def get_pending_requests(db: Session, user_id: int) -> list[BuddyRow]:
    require_user(db, user_id)
    return _relation_rows(db, Buddy.addressee_id == user_id, Buddy.status == RequestStatus.PENDING)


def get_sent_requests(db: Session, user_id: int) -> list[BuddyRow]:
    """Requests the user sent that are still open.

    Rejected requests stay listed as sent so the requester is not told about
    the rejection.
    """
    require_user(db, user_id)
    return _relation_rows(
        db,
        Buddy.requester_id == user_id,
        Buddy.status.in_([RequestStatus.PENDING, RequestStatus.REJECTED]),
    )


def remove_buddy(db: Session, user_id: int, other_id: int, block: bool = False) -> str:
    require_user(db, user_id)
    require_user(db, other_id, "Buddy not found")

    relation = find_relation(db, user_id, other_id)
    next_status = apply(BUDDY, relation.status if relation else None, Action.BLOCK if block else Action.REMOVE)
    if next_status is None:
        db.delete(relation)
    else:
        relation.status = next_status
    db.commit()

    if block:
        logger.info("User %s blocked user %s", user_id, other_id)
        return "Buddy blocked"
    logger.info("User %s removed buddy %s", user_id, other_id)
    return "Buddy removed"


def delete_relations_for_user(db: Session, user_id: int) -> int:
    """Drop every buddy row involving the user. Does not commit."""
    relations = db.scalars(
        select(Buddy).where(or_(Buddy.requester_id == user_id, Buddy.addressee_id == user_id))
    ).all()
    for relation in relations:
        db.delete(relation)
    return len(relations)
