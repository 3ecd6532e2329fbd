import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


# reported_by_id value for reports whose author has been anonymized
ANONYMIZED_REPORTER_ID = -1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class RequestStatus(str, enum.Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    BLOCKED = "Blocked"


class JourneyRole(str, enum.Enum):
    OWNER = "Owner"
    PARTICIPANT = "Participant"


class DangerousPlaceType(enum.IntEnum):
    ACCIDENT_PRONE = 0
    CRIME_SPOT = 1
    TRASH = 2
    POOR_LIGHTING = 3
    OTHER = 4


class VerificationType(str, enum.Enum):
    REGISTER = "Register"


def _enum_column(enum_cls, name: str) -> Enum:
    # Stored as VARCHAR holding the enum *value* so rows read the same
    # on PostgreSQL and SQLite.
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=16,
        values_callable=lambda members: [m.value for m in members],
    )


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    phone_number: Mapped[str] = mapped_column(Text, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (Index("ix_users_phone_number", "phone_number"),)


class Buddy(Base):
    __tablename__ = "buddies"

    requester_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    addressee_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    status: Mapped[RequestStatus] = mapped_column(
        _enum_column(RequestStatus, "buddy_status"), nullable=False, default=RequestStatus.PENDING
    )
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("requester_id <> addressee_id", name="buddy_not_self"),
        Index("ix_buddies_addressee_id", "addressee_id"),
    )


class Place(Base):
    __tablename__ = "places"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    city: Mapped[str] = mapped_column(Text, nullable=False)
    district: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    centre_gps: Mapped[str] = mapped_column(Text, nullable=False)


class Journey(Base):
    __tablename__ = "journeys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    start_id: Mapped[int] = mapped_column(Integer, ForeignKey("places.id"), nullable=False)
    end_id: Mapped[int] = mapped_column(Integer, ForeignKey("places.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_journeys_start_at", "start_at"),)


class JourneyParticipant(Base):
    __tablename__ = "journey_participants"

    journey_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("journeys.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role: Mapped[JourneyRole] = mapped_column(
        _enum_column(JourneyRole, "journey_role"), nullable=False, default=JourneyRole.PARTICIPANT
    )
    status: Mapped[RequestStatus] = mapped_column(
        _enum_column(RequestStatus, "participant_status"), nullable=False, default=RequestStatus.PENDING
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (Index("ix_journey_participants_user_id", "user_id"),)


class JourneyMessage(Base):
    __tablename__ = "journey_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    journey_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("journeys.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (Index("ix_journey_messages_journey_id_sent_at", "journey_id", "sent_at"),)


class Rating(Base):
    __tablename__ = "ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    journey_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("journeys.id", ondelete="CASCADE"), nullable=False
    )
    # Nulled when the rating is anonymized; the row itself is kept.
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    rating_value: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("journey_id", "user_id", name="uq_ratings_journey_user"),
        CheckConstraint("rating_value BETWEEN 1 AND 5", name="rating_value_range"),
    )


class DangerousPlace(Base):
    __tablename__ = "dangerous_places"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Plain integer, not a foreign key: anonymized rows hold ANONYMIZED_REPORTER_ID.
    reported_by_id: Mapped[int] = mapped_column(Integer, nullable=False)
    place_type: Mapped[int] = mapped_column(Integer, nullable=False, default=DangerousPlaceType.OTHER)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    gps: Mapped[str] = mapped_column(Text, nullable=False)
    reported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_dangerous_places_reported_by_id", "reported_by_id"),
        Index("ix_dangerous_places_reported_at", "reported_at"),
    )


class UserVerification(Base):
    __tablename__ = "user_verifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    type: Mapped[VerificationType] = mapped_column(
        _enum_column(VerificationType, "verification_type"), nullable=False
    )
    phone_number: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Staged registration details, copied onto the User once the code is confirmed
    username: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (Index("ix_user_verifications_phone_number", "phone_number"),)
