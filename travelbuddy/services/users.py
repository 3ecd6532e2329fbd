import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.orm import Session

from ..auth import create_access_token, hash_password, verify_password
from ..errors import ResultStatus, ServiceError, invalid, not_found, unauthorized, user_not_found
from ..models import (
    ANONYMIZED_REPORTER_ID,
    Buddy,
    DangerousPlace,
    JourneyMessage,
    JourneyParticipant,
    Rating,
    RequestStatus,
    User,
    UserVerification,
    VerificationType,
    ensure_utc,
    utcnow,
)
from ..settings import get_settings
from ..sms import SmsError, SmsSender
from . import buddies, journeys
from .lookups import require_user


logger = logging.getLogger("travelbuddy.users")


@dataclass(frozen=True)
class UserRow:
    id: int
    username: str
    email: str
    phone_number: str
    created_at: datetime


def _row(user: User) -> UserRow:
    return UserRow(
        id=user.id,
        username=user.username,
        email=user.email,
        phone_number=user.phone_number,
        created_at=ensure_utc(user.created_at),
    )


def normalize_phone_number(raw: str) -> str:
    """Bring Dutch phone numbers typed in any common style to ``+31...``."""
    if raw is None or not raw.strip():
        return ""
    cleaned = "".join(raw.split())

    if cleaned.startswith("+31"):
        return "+31" + "".join(ch for ch in cleaned[3:] if ch.isdigit())
    if cleaned.startswith("0031"):
        return "+31" + "".join(ch for ch in cleaned[4:] if ch.isdigit())

    digits = "".join(ch for ch in cleaned if ch.isdigit())
    if digits.startswith("31"):
        return "+31" + digits[2:]
    if digits.startswith("0"):
        digits = digits[1:]
    return "+31" + digits


def _digits(value: str) -> str:
    return "".join(ch for ch in value if ch.isdigit())


def is_password_strong(password: str) -> bool:
    return (
        len(password) >= 8
        and any(ch.isupper() for ch in password)
        and any(ch.islower() for ch in password)
        and any(ch.isdigit() for ch in password)
        and any(not ch.isalnum() for ch in password)
    )


def _require_strong(password: str) -> None:
    if not is_password_strong(password):
        raise invalid(
            "Password must be at least 8 characters and contain an upper case letter, "
            "a lower case letter, a digit and a special character"
        )


def _require_phone(phone: str) -> str:
    if not phone or not phone.strip():
        raise invalid("Phone number is required")
    normalized = normalize_phone_number(phone)
    if len(_digits(normalized)) < 8:
        raise invalid("Phone number is not valid")
    return normalized


def _phone_in_use(db: Session, phone: str, exclude_user_id: int | None = None) -> bool:
    stmt = select(User.id).where(User.phone_number == phone)
    if exclude_user_id is not None:
        stmt = stmt.where(User.id != exclude_user_id)
    return db.scalar(stmt.limit(1)) is not None


def start_registration(
    db: Session, sms: SmsSender, username: str, password: str, email: str, phone_number: str
) -> str:
    """Stage a registration and text a confirmation code to the phone."""
    username = (username or "").strip()
    email = (email or "").strip()
    if not username or not email or not password:
        raise invalid("Username, email, password and phone number are required")
    phone = _require_phone(phone_number)
    _require_strong(password)

    if db.scalar(select(User.id).where(User.username == username)) is not None:
        raise invalid("Username is already taken")
    if _phone_in_use(db, phone):
        raise invalid("Phone number is already in use")

    db.execute(
        delete(UserVerification).where(
            UserVerification.phone_number == phone,
            UserVerification.type == VerificationType.REGISTER,
        )
    )
    code = f"{secrets.randbelow(1_000_000):06d}"
    db.add(
        UserVerification(
            type=VerificationType.REGISTER,
            phone_number=phone,
            code=code,
            expires_at=utcnow() + timedelta(seconds=get_settings().VERIFICATION_CODE_TTL_SECONDS),
            username=username,
            password_hash=hash_password(password),
            email=email,
        )
    )
    db.flush()

    try:
        sms.send(phone, f"Your Travel Buddy verification code is {code}")
    except SmsError as exc:
        db.rollback()
        logger.error("Could not send verification code to %s: %s", phone, exc)
        raise ServiceError(ResultStatus.ERROR, "Could not send the verification code") from exc

    db.commit()
    logger.info("Registration started for %s", username)
    return "Verification code sent"


def complete_registration(db: Session, phone_number: str, code: str) -> UserRow:
    phone = _require_phone(phone_number)
    verification = db.scalar(
        select(UserVerification)
        .where(
            UserVerification.phone_number == phone,
            UserVerification.type == VerificationType.REGISTER,
        )
        .order_by(UserVerification.created_at.desc(), UserVerification.id.desc())
        .limit(1)
    )
    if verification is None:
        raise not_found("No pending registration for this phone number")

    if ensure_utc(verification.expires_at) < utcnow():
        db.delete(verification)
        db.commit()
        raise invalid("Verification code has expired")
    if not secrets.compare_digest(verification.code, (code or "").strip()):
        raise unauthorized("Invalid verification code")
    if db.scalar(select(User.id).where(User.username == verification.username)) is not None:
        raise invalid("Username is already taken")

    user = User(
        username=verification.username,
        email=verification.email,
        phone_number=phone,
        password_hash=verification.password_hash,
        created_at=utcnow(),
    )
    db.add(user)
    db.delete(verification)
    db.commit()

    logger.info("User %s registered as %s", user.id, user.username)
    return _row(user)


def login(db: Session, username: str, password: str) -> tuple[str, UserRow]:
    user = db.scalar(select(User).where(User.username == (username or "").strip()))
    if user is None or not verify_password(password, user.password_hash):
        raise unauthorized("Invalid username or password")
    return create_access_token(user_id=user.id, username=user.username), _row(user)


def get_user_info(db: Session, user_id: int) -> UserRow:
    return _row(require_user(db, user_id))


def find_user_by_phone(db: Session, user_id: int, number: str) -> UserRow:
    if not number or not number.strip():
        raise invalid("Phone number is required")
    digits = _digits(normalize_phone_number(number))
    if len(digits) < 8:
        raise invalid("Phone number is not valid")

    user = db.scalar(select(User).where(User.phone_number.like(f"%{digits[-8:]}")).limit(1))
    if user is None:
        raise user_not_found("No user found with this phone number")

    blocked = db.scalar(
        select(Buddy.requester_id).where(
            Buddy.status == RequestStatus.BLOCKED,
            or_(
                and_(Buddy.requester_id == user_id, Buddy.addressee_id == user.id),
                and_(Buddy.requester_id == user.id, Buddy.addressee_id == user_id),
            ),
        )
    )
    if blocked is not None:
        raise ServiceError(ResultStatus.BLOCKED, "This user is blocked")
    return _row(user)


def update_email(db: Session, user_id: int, email: str) -> str:
    if not email or not email.strip():
        raise invalid("Email is required")
    user = require_user(db, user_id)
    user.email = email.strip()
    db.commit()
    logger.info("User %s changed their email", user_id)
    return "Email updated"


def update_phone_number(db: Session, user_id: int, phone_number: str) -> str:
    phone = _require_phone(phone_number)
    user = require_user(db, user_id)
    if user.phone_number == phone:
        raise invalid("New phone number must be different")
    if _phone_in_use(db, phone, exclude_user_id=user_id):
        raise invalid("Phone number is already in use")
    user.phone_number = phone
    db.commit()
    logger.info("User %s changed their phone number", user_id)
    return "Phone number updated"


def update_password(db: Session, user_id: int, old_password: str, new_password: str) -> str:
    user = require_user(db, user_id)
    if not verify_password(old_password, user.password_hash):
        raise unauthorized("Current password is incorrect")
    if old_password == new_password:
        raise invalid("New password must be different")
    _require_strong(new_password)
    user.password_hash = hash_password(new_password)
    db.commit()
    logger.info("User %s changed their password", user_id)
    return "Password updated"


def delete_user(db: Session, user_id: int) -> str:
    """Remove an account and everything tied to it in one transaction."""
    user = require_user(db, user_id)

    buddies.delete_relations_for_user(db, user_id)
    memberships = db.scalars(select(JourneyParticipant).where(JourneyParticipant.user_id == user_id)).all()
    for participant in memberships:
        journeys.leave(db, participant)
    db.flush()

    db.execute(delete(JourneyMessage).where(JourneyMessage.sender_id == user_id))
    db.execute(update(Rating).where(Rating.user_id == user_id).values(user_id=None))
    db.execute(
        update(DangerousPlace)
        .where(DangerousPlace.reported_by_id == user_id)
        .values(reported_by_id=ANONYMIZED_REPORTER_ID)
    )
    db.execute(delete(UserVerification).where(UserVerification.user_id == user_id))
    db.delete(user)
    db.commit()

    logger.info("User %s deleted their account", user_id)
    return "Account deleted"
