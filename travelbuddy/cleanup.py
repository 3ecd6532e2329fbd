"""Retention sweep for old journeys and dangerous-place reports.

Journeys whose start time lies beyond the retention window lose their chat
messages and participant rows, and their ratings are anonymized. The journey
row itself is kept. Reports older than the window are detached from their
author.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, NamedTuple, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from .db import session_scope
from .models import (
    ANONYMIZED_REPORTER_ID,
    DangerousPlace,
    Journey,
    JourneyMessage,
    JourneyParticipant,
    Rating,
    utcnow,
)


logger = logging.getLogger("travelbuddy.cleanup")


class SweepResult(NamedTuple):
    journeys: int
    messages: int
    participants: int
    ratings: int
    reports: int


class RetentionSweeper:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        retention_days: int = 7,
        interval_seconds: int = 6 * 60 * 60,
    ) -> None:
        self.session_factory = session_factory
        self.retention = timedelta(days=retention_days)
        self.interval_seconds = interval_seconds

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        return (now or utcnow()) - self.retention

    def cleanup_journeys(self, now: Optional[datetime] = None) -> tuple[int, int, int, int]:
        """Strip journeys that started before the cutoff. Returns (journeys, messages, participants, ratings)."""
        cutoff = self.cutoff(now)
        try:
            with session_scope(self.session_factory) as session:
                journey_ids = list(session.scalars(select(Journey.id).where(Journey.start_at < cutoff)))
                if not journey_ids:
                    return 0, 0, 0, 0

                messages = session.execute(
                    delete(JourneyMessage).where(JourneyMessage.journey_id.in_(journey_ids))
                ).rowcount
                participants = session.execute(
                    delete(JourneyParticipant).where(JourneyParticipant.journey_id.in_(journey_ids))
                ).rowcount
                ratings = session.execute(
                    update(Rating)
                    .where(Rating.journey_id.in_(journey_ids), Rating.user_id.is_not(None))
                    .values(user_id=None)
                ).rowcount
        except Exception:
            logger.error("Journey cleanup failed, changes rolled back")
            raise

        logger.info(
            "Journey cleanup: %s journeys older than %s, removed %s messages and %s participants, anonymized %s ratings",
            len(journey_ids),
            cutoff.isoformat(),
            messages,
            participants,
            ratings,
        )
        return len(journey_ids), messages, participants, ratings

    def cleanup_dangerous_places(self, now: Optional[datetime] = None) -> int:
        cutoff = self.cutoff(now)
        with session_scope(self.session_factory) as session:
            anonymized = session.execute(
                update(DangerousPlace)
                .where(
                    DangerousPlace.reported_at < cutoff,
                    DangerousPlace.reported_by_id != ANONYMIZED_REPORTER_ID,
                )
                .values(reported_by_id=ANONYMIZED_REPORTER_ID)
            ).rowcount

        logger.info("Dangerous place cleanup: anonymized %s reports older than %s", anonymized, cutoff.isoformat())
        return anonymized

    def run_once(self, now: Optional[datetime] = None) -> SweepResult:
        now = now or utcnow()
        journeys, messages, participants, ratings = self.cleanup_journeys(now)
        reports = self.cleanup_dangerous_places(now)
        return SweepResult(journeys, messages, participants, ratings, reports)

    async def run_forever(self) -> None:
        logger.info("Retention sweeper started, running every %s seconds", self.interval_seconds)
        while True:
            try:
                await asyncio.to_thread(self.run_once)
            except asyncio.CancelledError:
                raise
            except Exception:
                # Retried on the next tick
                logger.exception("Retention sweep failed")
            await asyncio.sleep(self.interval_seconds)
