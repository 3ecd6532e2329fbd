import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import invalid, unauthorized
from ..models import JourneyMessage, RequestStatus, User, ensure_utc, utcnow
from .lookups import get_participant, require_journey


logger = logging.getLogger("travelbuddy.chat")


@dataclass(frozen=True)
class MessageRow:
    id: int
    journey_id: int
    sender_id: int
    sender_name: str
    content: str
    sent_at: datetime


def _require_member(db: Session, journey_id: int, user_id: int) -> None:
    require_journey(db, journey_id)
    participant = get_participant(db, journey_id, user_id)
    if participant is None or participant.status != RequestStatus.ACCEPTED:
        raise unauthorized("You are not a member of this journey")


def get_messages(db: Session, journey_id: int, user_id: int) -> list[MessageRow]:
    _require_member(db, journey_id, user_id)
    rows = db.execute(
        select(JourneyMessage, User.username)
        .join(User, User.id == JourneyMessage.sender_id)
        .where(JourneyMessage.journey_id == journey_id)
        .order_by(JourneyMessage.sent_at, JourneyMessage.id)
    ).all()
    return [
        MessageRow(
            id=message.id,
            journey_id=message.journey_id,
            sender_id=message.sender_id,
            sender_name=username,
            content=message.content,
            sent_at=ensure_utc(message.sent_at),
        )
        for message, username in rows
    ]


def send_message(db: Session, journey_id: int, sender_id: int, content: str) -> MessageRow:
    if not content or not content.strip():
        raise invalid("Message content cannot be empty")
    _require_member(db, journey_id, sender_id)

    message = JourneyMessage(journey_id=journey_id, sender_id=sender_id, content=content, sent_at=utcnow())
    db.add(message)
    db.commit()

    sender = db.get(User, sender_id)
    logger.debug("User %s posted message %s in journey %s", sender_id, message.id, journey_id)
    return MessageRow(
        id=message.id,
        journey_id=journey_id,
        sender_id=sender_id,
        sender_name=sender.username,
        content=message.content,
        sent_at=ensure_utc(message.sent_at),
    )
