import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import invalid, invalid_operation, not_found, unauthorized
from ..models import (
    Journey,
    JourneyMessage,
    JourneyParticipant,
    JourneyRole,
    Place,
    Rating,
    RequestStatus,
    User,
    ensure_utc,
    utcnow,
)
from ..transitions import PARTICIPANT, Action, apply, response_action
from .lookups import buddy_ids, get_participant, require_journey, require_user


logger = logging.getLogger("travelbuddy.journeys")


@dataclass(frozen=True)
class PlaceRow:
    id: int
    city: str
    district: Optional[str]
    centre_gps: str


@dataclass(frozen=True)
class ParticipantRow:
    user_id: int
    username: str
    status: RequestStatus
    role: JourneyRole
    joined_at: datetime


@dataclass(frozen=True)
class JourneyRow:
    id: int
    owner_id: Optional[int]
    owner_name: Optional[str]
    start: PlaceRow
    end: PlaceRow
    created_at: datetime
    start_at: datetime
    finished_at: Optional[datetime]
    participants: list[ParticipantRow]


@dataclass(frozen=True)
class RatingRow:
    rating_value: int
    note: Optional[str]


def _place_row(place: Place) -> PlaceRow:
    return PlaceRow(id=place.id, city=place.city, district=place.district, centre_gps=place.centre_gps)


def _participants_by_journey(db: Session, journey_ids: list[int]) -> dict[int, list[ParticipantRow]]:
    rows = db.execute(
        select(JourneyParticipant, User.username)
        .join(User, User.id == JourneyParticipant.user_id)
        .where(JourneyParticipant.journey_id.in_(journey_ids))
        .order_by(JourneyParticipant.joined_at, JourneyParticipant.user_id)
    ).all()
    grouped: dict[int, list[ParticipantRow]] = defaultdict(list)
    for participant, username in rows:
        grouped[participant.journey_id].append(
            ParticipantRow(
                user_id=participant.user_id,
                username=username,
                status=participant.status,
                role=participant.role,
                joined_at=ensure_utc(participant.joined_at),
            )
        )
    return grouped


def _journey_rows(db: Session, journeys: list[Journey]) -> list[JourneyRow]:
    if not journeys:
        return []
    journey_ids = [j.id for j in journeys]
    participants = _participants_by_journey(db, journey_ids)
    place_ids = {j.start_id for j in journeys} | {j.end_id for j in journeys}
    places = {p.id: _place_row(p) for p in db.scalars(select(Place).where(Place.id.in_(place_ids)))}

    result = []
    for journey in journeys:
        members = participants.get(journey.id, [])
        owner = next((p for p in members if p.role == JourneyRole.OWNER), None)
        result.append(
            JourneyRow(
                id=journey.id,
                owner_id=owner.user_id if owner else None,
                owner_name=owner.username if owner else None,
                start=places[journey.start_id],
                end=places[journey.end_id],
                created_at=ensure_utc(journey.created_at),
                start_at=ensure_utc(journey.start_at),
                finished_at=ensure_utc(journey.finished_at),
                participants=members,
            )
        )
    return result


def _owner(db: Session, journey_id: int) -> Optional[JourneyParticipant]:
    return db.scalar(
        select(JourneyParticipant).where(
            JourneyParticipant.journey_id == journey_id,
            JourneyParticipant.role == JourneyRole.OWNER,
        )
    )


def _require_owner(db: Session, journey: Journey, user_id: int, message: str) -> None:
    owner = _owner(db, journey.id)
    if owner is None or owner.user_id != user_id:
        raise unauthorized(message)


def _require_place(db: Session, place_id: int, label: str) -> Place:
    place = db.get(Place, place_id)
    if place is None:
        raise invalid(f"{label} place not found")
    return place


def get_places(db: Session) -> list[PlaceRow]:
    places = db.scalars(select(Place).order_by(Place.city, Place.district)).all()
    return [_place_row(p) for p in places]


def get_journeys_by_user(db: Session, user_id: int) -> list[JourneyRow]:
    require_user(db, user_id)
    journeys = db.scalars(
        select(Journey)
        .join(JourneyParticipant, JourneyParticipant.journey_id == Journey.id)
        .where(
            JourneyParticipant.user_id == user_id,
            or_(
                JourneyParticipant.status == RequestStatus.ACCEPTED,
                JourneyParticipant.role == JourneyRole.OWNER,
            ),
        )
        .order_by(Journey.start_at, Journey.id)
    ).all()
    return _journey_rows(db, list(journeys))


def get_buddy_journeys(db: Session, user_id: int) -> list[JourneyRow]:
    """Open journeys owned by a buddy that the user has not joined or been blocked from."""
    require_user(db, user_id)
    buddies = buddy_ids(db, user_id)
    if not buddies:
        logger.debug("User %s has no buddies, no buddy journeys", user_id)
        return []

    excluded = select(JourneyParticipant.journey_id).where(
        JourneyParticipant.user_id == user_id,
        JourneyParticipant.status.in_([RequestStatus.ACCEPTED, RequestStatus.BLOCKED]),
    )
    journeys = db.scalars(
        select(Journey)
        .join(JourneyParticipant, JourneyParticipant.journey_id == Journey.id)
        .where(
            JourneyParticipant.role == JourneyRole.OWNER,
            JourneyParticipant.user_id.in_(buddies),
            Journey.finished_at.is_(None),
            Journey.id.not_in(excluded),
        )
        .order_by(Journey.start_at, Journey.id)
    ).all()
    return _journey_rows(db, list(journeys))


def get_journey_participants(db: Session, user_id: int, journey_id: int) -> list[ParticipantRow]:
    require_journey(db, journey_id)
    participants = _participants_by_journey(db, [journey_id]).get(journey_id, [])
    if not participants:
        raise not_found("No participants found for this journey")
    if not any(p.user_id == user_id for p in participants):
        raise unauthorized("You are not part of this journey")
    return participants


def add_journey(
    db: Session, owner_id: int, start_place_id: int, end_place_id: int, start_at: datetime
) -> JourneyRow:
    require_user(db, owner_id)
    _require_place(db, start_place_id, "Start")
    _require_place(db, end_place_id, "End")
    start_at = ensure_utc(start_at)
    now = utcnow()

    journey = Journey(start_id=start_place_id, end_id=end_place_id, created_at=now, start_at=start_at)
    db.add(journey)
    db.flush()
    db.add(
        JourneyParticipant(
            journey_id=journey.id,
            user_id=owner_id,
            role=JourneyRole.OWNER,
            status=RequestStatus.ACCEPTED,
            joined_at=now,
        )
    )
    db.commit()

    logger.info("User %s created journey %s", owner_id, journey.id)
    return _journey_rows(db, [journey])[0]


def send_join_request(db: Session, user_id: int, journey_id: int) -> str:
    require_user(db, user_id)
    journey = require_journey(db, journey_id)
    if journey.finished_at is not None:
        raise invalid_operation("This journey has already finished")

    existing = get_participant(db, journey_id, user_id)
    if existing is not None:
        existing.status = apply(PARTICIPANT, existing.status, Action.REQUEST_JOIN)
        db.commit()
        logger.info("User %s re-requested to join journey %s", user_id, journey_id)
        return "Join request sent. Awaiting owner approval."

    next_status = apply(PARTICIPANT, None, Action.REQUEST_JOIN)
    if _owner(db, journey_id) is None:
        raise invalid_operation("This journey has no owner")

    members = set(
        db.scalars(
            select(JourneyParticipant.user_id).where(
                JourneyParticipant.journey_id == journey_id,
                JourneyParticipant.status == RequestStatus.ACCEPTED,
            )
        )
    )
    if not members & buddy_ids(db, user_id):
        raise unauthorized("You can only join journeys where a buddy is already participating")

    db.add(
        JourneyParticipant(
            journey_id=journey_id,
            user_id=user_id,
            role=JourneyRole.PARTICIPANT,
            status=next_status,
            joined_at=utcnow(),
        )
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise invalid_operation("A join request is already pending") from None

    logger.info("User %s requested to join journey %s", user_id, journey_id)
    return "Join request sent. Awaiting owner approval."


def respond_to_join_request(
    db: Session, owner_id: int, journey_id: int, requester_id: int, status: RequestStatus
) -> str:
    journey = require_journey(db, journey_id)
    _require_owner(db, journey, owner_id, "Only the journey owner can respond to join requests")

    request = get_participant(db, journey_id, requester_id)
    if request is None:
        raise not_found("Join request not found")

    request.status = apply(PARTICIPANT, request.status, response_action(status))
    if request.status == RequestStatus.ACCEPTED:
        request.joined_at = utcnow()
    db.commit()

    logger.info("Owner %s set join request of user %s on journey %s to %s", owner_id, requester_id, journey_id, status.value)
    return f"Join request {status.value.lower()}"


def delete_journey_rows(db: Session, journey_id: int) -> None:
    """Remove a journey together with everything that hangs off it. Does not commit."""
    db.execute(delete(JourneyMessage).where(JourneyMessage.journey_id == journey_id))
    db.execute(delete(Rating).where(Rating.journey_id == journey_id))
    db.execute(delete(JourneyParticipant).where(JourneyParticipant.journey_id == journey_id))
    db.execute(delete(Journey).where(Journey.id == journey_id))


def leave(db: Session, participant: JourneyParticipant) -> str:
    """Drop a participant row, handing ownership on or deleting the journey. Does not commit."""
    journey_id = participant.journey_id
    if participant.role != JourneyRole.OWNER:
        db.delete(participant)
        return "You left the journey"

    successor = db.scalar(
        select(JourneyParticipant)
        .where(
            JourneyParticipant.journey_id == journey_id,
            JourneyParticipant.user_id != participant.user_id,
            JourneyParticipant.status == RequestStatus.ACCEPTED,
        )
        .order_by(JourneyParticipant.joined_at, JourneyParticipant.user_id)
        .limit(1)
    )
    if successor is None:
        db.delete(participant)
        db.flush()
        delete_journey_rows(db, journey_id)
        logger.info("Journey %s deleted after its last member left", journey_id)
        return "You left the journey. The journey was deleted"

    successor.role = JourneyRole.OWNER
    db.delete(participant)
    logger.info("Ownership of journey %s moved from user %s to user %s", journey_id, participant.user_id, successor.user_id)
    return "You left the journey. Ownership was transferred"


def leave_journey(db: Session, user_id: int, journey_id: int) -> str:
    require_journey(db, journey_id)
    participant = get_participant(db, journey_id, user_id)
    if participant is None:
        raise invalid_operation("You are not part of this journey")

    message = leave(db, participant)
    db.commit()
    logger.info("User %s left journey %s", user_id, journey_id)
    return message


def update_journey_places(
    db: Session,
    user_id: int,
    journey_id: int,
    start_place_id: Optional[int] = None,
    end_place_id: Optional[int] = None,
) -> str:
    require_user(db, user_id)
    journey = require_journey(db, journey_id)
    _require_owner(db, journey, user_id, "Only the journey owner can update the journey")
    if journey.finished_at is not None:
        raise invalid("Cannot update a finished journey")

    # A missing or zero id leaves that end of the trip unchanged
    if start_place_id:
        journey.start_id = _require_place(db, start_place_id, "Start").id
    if end_place_id:
        journey.end_id = _require_place(db, end_place_id, "End").id
    db.commit()

    logger.info("User %s updated places of journey %s", user_id, journey_id)
    return "Journey updated"


def finish_journey(db: Session, user_id: int, journey_id: int) -> str:
    require_user(db, user_id)
    journey = require_journey(db, journey_id)
    _require_owner(db, journey, user_id, "Only the journey owner can finish the journey")
    if journey.finished_at is not None:
        raise invalid("Journey is already finished")

    journey.finished_at = utcnow()
    db.commit()

    logger.info("User %s finished journey %s", user_id, journey_id)
    return "Journey finished"


def rate_journey(db: Session, user_id: int, journey_id: int, value: int, note: Optional[str] = None) -> str:
    require_user(db, user_id)
    require_journey(db, journey_id)
    if not 1 <= value <= 5:
        raise invalid("Rating must be between 1 and 5")

    participant = get_participant(db, journey_id, user_id)
    if participant is None:
        raise unauthorized("You are not part of this journey")
    if participant.status == RequestStatus.REJECTED:
        raise invalid_operation("You cannot rate a journey you were rejected from")

    note = note.strip() if note and note.strip() else None
    rating = db.scalar(select(Rating).where(Rating.journey_id == journey_id, Rating.user_id == user_id))
    if rating is None:
        db.add(Rating(journey_id=journey_id, user_id=user_id, rating_value=value, note=note, created_at=utcnow()))
    else:
        rating.rating_value = value
        rating.note = note
        rating.created_at = utcnow()

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise invalid_operation("Rating was submitted concurrently, try again") from None

    logger.info("User %s rated journey %s with %s", user_id, journey_id, value)
    return "Rating saved"


def get_my_rating(db: Session, user_id: int, journey_id: int) -> Optional[RatingRow]:
    require_journey(db, journey_id)
    if get_participant(db, journey_id, user_id) is None:
        raise unauthorized("You are not part of this journey")

    rating = db.scalar(select(Rating).where(Rating.journey_id == journey_id, Rating.user_id == user_id))
    if rating is None:
        return None
    return RatingRow(rating_value=rating.rating_value, note=rating.note)
