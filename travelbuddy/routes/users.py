from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import error_response, get_current_user
from ..errors import ResultStatus, ServiceError
from ..models import User
from ..services import users
from ..sms import SmsSender, get_sms_sender


router = APIRouter(prefix="/api/User", tags=["users"])


class MessageResponse(BaseModel):
    message: str


class StartRegisterRequest(BaseModel):
    username: str
    password: str
    email: str
    phone_number: str


class VerifyRegisterRequest(BaseModel):
    phone_number: str
    code: str


class LoginRequest(BaseModel):
    username: str
    password: str


class EmailUpdateRequest(BaseModel):
    email: str


class PhoneUpdateRequest(BaseModel):
    phone_number: str


class PasswordUpdateRequest(BaseModel):
    old_password: str
    new_password: str


class UserOut(BaseModel):
    id: int
    username: str
    email: str
    phone_number: str
    created_at: datetime


class PublicUserOut(BaseModel):
    id: int
    username: str


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: PublicUserOut


@router.post("/StartRegister", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
def start_register(
    payload: StartRegisterRequest,
    db: Session = Depends(get_db),
    sms: SmsSender = Depends(get_sms_sender),
):
    message = users.start_registration(
        db, sms, payload.username, payload.password, payload.email, payload.phone_number
    )
    return MessageResponse(message=message)


@router.post("/VerifyRegister", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def verify_register(payload: VerifyRegisterRequest, db: Session = Depends(get_db)):
    return users.complete_registration(db, payload.phone_number, payload.code)


@router.post("/Login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    try:
        token, user = users.login(db, payload.username, payload.password)
    except ServiceError as exc:
        if exc.status != ResultStatus.UNAUTHORIZED:
            raise
        error_response(status.HTTP_401_UNAUTHORIZED, "INVALID_CREDENTIALS", exc.message)
    return AuthResponse(access_token=token, user=PublicUserOut(id=user.id, username=user.username))


@router.get("/GetUserInfo", response_model=UserOut)
def get_user_info(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return users.get_user_info(db, current_user.id)


@router.get("/FindbyPhonenumber/{number}", response_model=PublicUserOut)
def find_by_phone_number(
    number: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Look up another user by phone number so they can be added as a buddy."""
    found = users.find_user_by_phone(db, current_user.id, number)
    return PublicUserOut(id=found.id, username=found.username)


@router.patch("/UpdateEmail", response_model=MessageResponse)
def update_email(
    payload: EmailUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MessageResponse(message=users.update_email(db, current_user.id, payload.email))


@router.patch("/UpdatePhoneNumber", response_model=MessageResponse)
def update_phone_number(
    payload: PhoneUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MessageResponse(message=users.update_phone_number(db, current_user.id, payload.phone_number))


@router.patch("/UpdatePassword", response_model=MessageResponse)
def update_password(
    payload: PasswordUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = users.update_password(db, current_user.id, payload.old_password, payload.new_password)
    return MessageResponse(message=message)


@router.delete("/Delete", response_model=MessageResponse)
def delete_account(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MessageResponse(message=users.delete_user(db, current_user.id))
