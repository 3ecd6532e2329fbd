from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_current_user
from ..models import RequestStatus, User
from ..services import buddies


router = APIRouter(prefix="/api/Buddy", tags=["buddies"])


class MessageResponse(BaseModel):
    message: str


class RespondRequest(BaseModel):
    requester_id: int
    status: RequestStatus


class BuddyOut(BaseModel):
    requester_id: int
    requester_name: str
    addressee_id: int
    addressee_name: str
    status: RequestStatus
    requested_at: datetime


@router.post("/Send/{addressee_id}", response_model=MessageResponse)
def send_request(
    addressee_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MessageResponse(message=buddies.send_request(db, current_user.id, addressee_id))


@router.patch("/Respond", response_model=MessageResponse)
def respond_to_request(
    payload: RespondRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = buddies.respond_to_request(db, current_user.id, payload.requester_id, payload.status)
    return MessageResponse(message=message)


@router.get("/List", response_model=list[BuddyOut])
def list_buddies(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return buddies.get_buddies(db, current_user.id)


@router.get("/Pending", response_model=list[BuddyOut])
def pending_requests(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Requests other users sent to the caller that still await an answer."""
    return buddies.get_pending_requests(db, current_user.id)


@router.get("/GetSend", response_model=list[BuddyOut])
def sent_requests(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return buddies.get_sent_requests(db, current_user.id)


@router.patch("/Block/{buddy_id}", response_model=MessageResponse)
def block_buddy(
    buddy_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MessageResponse(message=buddies.remove_buddy(db, current_user.id, buddy_id, block=True))


@router.delete("/Delete/{buddy_id}", response_model=MessageResponse)
def delete_buddy(
    buddy_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MessageResponse(message=buddies.remove_buddy(db, current_user.id, buddy_id))
