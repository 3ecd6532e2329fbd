from fastapi import Depends, Header
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from .auth import decode_token
from .db import get_db
from .models import User


def error_response(status_code: int, code: str, message: str, details: dict | None = None):
    body = {"error": {"code": code, "message": message}}
    if details is not None:
        body["error"]["details"] = details
    raise HTTPException(status_code=status_code, detail=body)


def get_current_user(
    authorization: str | None = Header(None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> User:
    if not authorization or not authorization.lower().startswith("bearer "):
        error_response(status.HTTP_401_UNAUTHORIZED, "UNAUTHORIZED", "Missing bearer token")

    token = authorization.split(" ", 1)[1]
    payload = decode_token(token)
    if not payload:
        error_response(status.HTTP_401_UNAUTHORIZED, "UNAUTHORIZED", "Invalid token")

    subject = payload.get("sub")
    username = payload.get("username")
    if not subject or not username or not str(subject).isdigit():
        error_response(status.HTTP_401_UNAUTHORIZED, "UNAUTHORIZED", "Invalid token payload")

    user = db.get(User, int(subject))
    if not user:
        error_response(status.HTTP_401_UNAUTHORIZED, "UNAUTHORIZED", "User not found")
    return user
