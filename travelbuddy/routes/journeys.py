from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_current_user
from ..models import JourneyRole, RequestStatus, User
from ..services import journeys


router = APIRouter(prefix="/api/Journey", tags=["journeys"])


class MessageResponse(BaseModel):
    message: str


class JourneyCreateRequest(BaseModel):
    start_place_id: int = Field(ge=1)
    end_place_id: int = Field(ge=1)
    start_at: datetime


class JourneyPlacesRequest(BaseModel):
    start_place_id: int | None = None
    end_place_id: int | None = None


class JoinResponseRequest(BaseModel):
    requester_id: int
    status: RequestStatus


class RatingRequest(BaseModel):
    rating_value: int = Field(ge=1, le=5)
    note: str | None = Field(default=None, max_length=1000)


class PlaceOut(BaseModel):
    id: int
    city: str
    district: str | None = None
    centre_gps: str


class ParticipantOut(BaseModel):
    user_id: int
    username: str
    status: RequestStatus
    role: JourneyRole
    joined_at: datetime


class JourneyOut(BaseModel):
    id: int
    owner_id: int | None = None
    owner_name: str | None = None
    start: PlaceOut
    end: PlaceOut
    created_at: datetime
    start_at: datetime
    finished_at: datetime | None = None
    participants: list[ParticipantOut]


class RatingOut(BaseModel):
    rating_value: int
    note: str | None = None


@router.get("/GetMyJourneys", response_model=list[JourneyOut])
def get_my_journeys(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return journeys.get_journeys_by_user(db, current_user.id)


@router.get("/GetBuddyJourneys", response_model=list[JourneyOut])
def get_buddy_journeys(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return journeys.get_buddy_journeys(db, current_user.id)


@router.get("/GetParticipants/{journey_id}", response_model=list[ParticipantOut])
def get_participants(
    journey_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return journeys.get_journey_participants(db, current_user.id, journey_id)


@router.get("/GetPlaces", response_model=list[PlaceOut])
def get_places(
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return journeys.get_places(db)


@router.post("/AddJourney", response_model=JourneyOut, status_code=status.HTTP_201_CREATED)
def add_journey(
    payload: JourneyCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return journeys.add_journey(
        db, current_user.id, payload.start_place_id, payload.end_place_id, payload.start_at
    )


@router.post("/SendJoinRequest/{journey_id}", response_model=MessageResponse)
def send_join_request(
    journey_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MessageResponse(message=journeys.send_join_request(db, current_user.id, journey_id))


@router.post("/RespondToJoinRequest/{journey_id}", response_model=MessageResponse)
def respond_to_join_request(
    journey_id: int,
    payload: JoinResponseRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = journeys.respond_to_join_request(
        db, current_user.id, journey_id, payload.requester_id, payload.status
    )
    return MessageResponse(message=message)


@router.patch("/UpdateGPS/{journey_id}", response_model=MessageResponse)
def update_journey_places(
    journey_id: int,
    payload: JourneyPlacesRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = journeys.update_journey_places(
        db, current_user.id, journey_id, payload.start_place_id, payload.end_place_id
    )
    return MessageResponse(message=message)


@router.patch("/FinishJourney/{journey_id}", response_model=MessageResponse)
def finish_journey(
    journey_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MessageResponse(message=journeys.finish_journey(db, current_user.id, journey_id))


@router.delete("/LeaveJourney/{journey_id}", response_model=MessageResponse)
def leave_journey(
    journey_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Leave a journey; an owner hands the journey to the longest-standing member."""
    return MessageResponse(message=journeys.leave_journey(db, current_user.id, journey_id))


@router.post("/RateJourney/{journey_id}", response_model=MessageResponse)
def rate_journey(
    journey_id: int,
    payload: RatingRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = journeys.rate_journey(db, current_user.id, journey_id, payload.rating_value, payload.note)
    return MessageResponse(message=message)


@router.get("/GetMyRating/{journey_id}", response_model=RatingOut | None)
def get_my_rating(
    journey_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return journeys.get_my_rating(db, current_user.id, journey_id)
