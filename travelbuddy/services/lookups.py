from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from ..errors import not_found, user_not_found
from ..models import Buddy, Journey, JourneyParticipant, RequestStatus, User


def require_user(db: Session, user_id: int, message: str = "User not found") -> User:
    user = db.get(User, user_id)
    if user is None:
        raise user_not_found(message)
    return user


def require_journey(db: Session, journey_id: int) -> Journey:
    journey = db.get(Journey, journey_id)
    if journey is None:
        raise not_found("Journey not found")
    return journey


def get_participant(db: Session, journey_id: int, user_id: int) -> JourneyParticipant | None:
    return db.get(JourneyParticipant, {"journey_id": journey_id, "user_id": user_id})


def find_relation(db: Session, user_id: int, other_id: int) -> Buddy | None:
    """The buddy row between two users, whichever of them sent the request."""
    return db.scalar(
        select(Buddy).where(
            or_(
                and_(Buddy.requester_id == user_id, Buddy.addressee_id == other_id),
                and_(Buddy.requester_id == other_id, Buddy.addressee_id == user_id),
            )
        )
    )


def buddy_ids(db: Session, user_id: int) -> set[int]:
    rows = db.execute(
        select(Buddy.requester_id, Buddy.addressee_id).where(
            Buddy.status == RequestStatus.ACCEPTED,
            or_(Buddy.requester_id == user_id, Buddy.addressee_id == user_id),
        )
    ).all()
    return {addressee if requester == user_id else requester for requester, addressee in rows}
