from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_current_user
from ..models import User
from ..services import chat


router = APIRouter(prefix="/api/Chat", tags=["chat"])


class SendMessageRequest(BaseModel):
    content: str = Field(max_length=2000)


class MessageOut(BaseModel):
    id: int
    journey_id: int
    sender_id: int
    sender_name: str
    content: str
    sent_at: datetime


@router.get("/journey/{journey_id}", response_model=list[MessageOut])
def get_messages(
    journey_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return chat.get_messages(db, journey_id, current_user.id)


@router.post("/journey/{journey_id}", response_model=MessageOut)
def send_message(
    journey_id: int,
    payload: SendMessageRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return chat.send_message(db, journey_id, current_user.id, payload.content)
