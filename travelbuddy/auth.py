from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from .settings import get_settings


# Argon2 avoids bcrypt's 72-byte password limit.
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def create_access_token(user_id: int, username: str, expires_seconds: Optional[int] = None) -> str:
    settings = get_settings()
    if expires_seconds is None:
        expires_seconds = settings.JWT_EXP_SECONDS

    now = datetime.now(timezone.utc)
    expire = now + timedelta(seconds=expires_seconds)
    payload = {
        # "sub" must be a string for jose's claim validation
        "sub": str(user_id),
        "username": username,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, get_settings().JWT_SECRET, algorithms=["HS256"])
    except JWTError:
        return None
