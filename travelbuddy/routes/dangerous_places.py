from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_current_user
from ..models import DangerousPlaceType, User
from ..services import dangerous_places


router = APIRouter(prefix="/api/DangerousPlace", tags=["dangerous-places"])


class ReportCreateRequest(BaseModel):
    place_type: DangerousPlaceType = DangerousPlaceType.OTHER
    description: str | None = None
    gps: str


class ReportUpdateRequest(ReportCreateRequest):
    id: int


class ReportOut(BaseModel):
    id: int
    reported_by_id: int
    place_type: DangerousPlaceType
    description: str | None = None
    gps: str
    reported_at: datetime


@router.get("/GetMyReports", response_model=list[ReportOut])
def get_my_reports(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The caller's reports from the past week, newest first."""
    return dangerous_places.get_my_reports(db, current_user.id)


@router.post("/CreateReport", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
def create_report(
    payload: ReportCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return dangerous_places.create_report(
        db, current_user.id, payload.place_type, payload.gps, payload.description
    )


@router.patch("/UpdateReport", response_model=ReportOut)
def update_report(
    payload: ReportUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return dangerous_places.update_report(
        db, current_user.id, payload.id, payload.place_type, payload.gps, payload.description
    )
