import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import invalid, not_found, unauthorized
from ..models import DangerousPlace, DangerousPlaceType, ensure_utc, utcnow
from .lookups import require_user


logger = logging.getLogger("travelbuddy.dangerous_places")

# Reports can be listed and edited by their author for this long
EDIT_WINDOW = timedelta(days=7)


@dataclass(frozen=True)
class ReportRow:
    id: int
    reported_by_id: int
    place_type: DangerousPlaceType
    description: Optional[str]
    gps: str
    reported_at: datetime


def _row(report: DangerousPlace) -> ReportRow:
    return ReportRow(
        id=report.id,
        reported_by_id=report.reported_by_id,
        place_type=DangerousPlaceType(report.place_type),
        description=report.description,
        gps=report.gps,
        reported_at=ensure_utc(report.reported_at),
    )


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is None or not description.strip():
        return None
    return description.strip()


def _clean_gps(gps: Optional[str]) -> str:
    if gps is None or not gps.strip():
        raise invalid("GPS location is required")
    return gps.strip()


def get_my_reports(db: Session, user_id: int) -> list[ReportRow]:
    require_user(db, user_id)
    since = utcnow() - EDIT_WINDOW
    reports = db.scalars(
        select(DangerousPlace)
        .where(DangerousPlace.reported_by_id == user_id, DangerousPlace.reported_at >= since)
        .order_by(DangerousPlace.reported_at.desc(), DangerousPlace.id.desc())
    ).all()
    return [_row(r) for r in reports]


def create_report(
    db: Session,
    user_id: int,
    place_type: DangerousPlaceType,
    gps: Optional[str],
    description: Optional[str] = None,
) -> ReportRow:
    require_user(db, user_id)
    report = DangerousPlace(
        reported_by_id=user_id,
        place_type=int(place_type),
        description=_clean_description(description),
        gps=_clean_gps(gps),
        reported_at=utcnow(),
    )
    db.add(report)
    db.commit()

    logger.info("User %s reported dangerous place %s (%s)", user_id, report.id, DangerousPlaceType(place_type).name)
    return _row(report)


def update_report(
    db: Session,
    user_id: int,
    report_id: int,
    place_type: DangerousPlaceType,
    gps: Optional[str],
    description: Optional[str] = None,
) -> ReportRow:
    require_user(db, user_id)
    report = db.get(DangerousPlace, report_id)
    if report is None:
        raise not_found("Report not found")
    if report.reported_by_id != user_id:
        raise unauthorized("You can only update your own reports")
    if ensure_utc(report.reported_at) < utcnow() - EDIT_WINDOW:
        raise invalid("Reports can only be edited within 7 days")

    report.place_type = int(place_type)
    report.gps = _clean_gps(gps)
    report.description = _clean_description(description)
    db.commit()

    logger.info("User %s updated dangerous place %s", user_id, report_id)
    return _row(report)
