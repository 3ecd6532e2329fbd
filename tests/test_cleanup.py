import asyncio
import itertools
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from travelbuddy.cleanup import RetentionSweeper
from travelbuddy.db import SessionLocal
from travelbuddy.models import (
    ANONYMIZED_REPORTER_ID,
    DangerousPlace,
    Journey,
    JourneyMessage,
    JourneyParticipant,
    JourneyRole,
    Rating,
    RequestStatus,
    User,
    utcnow,
)


_phones = itertools.count(60000001)


def _user(db, name: str) -> User:
    user = User(username=name, email=f"{name}@example.com", phone_number=f"+31{next(_phones)}", password_hash="x")
    db.add(user)
    db.flush()
    return user


def _journey(db, users: list[User], start_at) -> Journey:
    journey = Journey(start_id=1, end_id=2, start_at=start_at)
    db.add(journey)
    db.flush()
    for index, user in enumerate(users):
        db.add(
            JourneyParticipant(
                journey_id=journey.id,
                user_id=user.id,
                role=JourneyRole.OWNER if index == 0 else JourneyRole.PARTICIPANT,
                status=RequestStatus.ACCEPTED,
            )
        )
        db.add(JourneyMessage(journey_id=journey.id, sender_id=user.id, content=f"hello from {user.username}"))
        db.add(Rating(journey_id=journey.id, user_id=user.id, rating_value=4))
    db.flush()
    return journey


def _count(db, model, *criteria) -> int:
    return db.scalar(select(func.count()).select_from(model).where(*criteria))


def test_old_journeys_are_stripped_but_kept(db):
    now = utcnow()
    alice, bob = _user(db, "alice"), _user(db, "bob")
    old = _journey(db, [alice, bob], now - timedelta(days=8))
    recent = _journey(db, [alice, bob], now - timedelta(days=2))
    db.commit()

    result = RetentionSweeper(SessionLocal).run_once(now)
    assert result.journeys == 1
    assert result.messages == 2
    assert result.participants == 2
    assert result.ratings == 2

    db.expire_all()
    assert db.get(Journey, old.id) is not None
    assert _count(db, JourneyMessage, JourneyMessage.journey_id == old.id) == 0
    assert _count(db, JourneyParticipant, JourneyParticipant.journey_id == old.id) == 0
    assert _count(db, Rating, Rating.journey_id == old.id) == 2
    assert _count(db, Rating, Rating.journey_id == old.id, Rating.user_id.is_not(None)) == 0

    assert _count(db, JourneyMessage, JourneyMessage.journey_id == recent.id) == 2
    assert _count(db, JourneyParticipant, JourneyParticipant.journey_id == recent.id) == 2
    assert _count(db, Rating, Rating.journey_id == recent.id, Rating.user_id.is_not(None)) == 2


def test_old_reports_are_anonymized_once(db):
    now = utcnow()
    alice = _user(db, "alice")
    old = DangerousPlace(reported_by_id=alice.id, place_type=0, gps="1,1", reported_at=now - timedelta(days=9))
    fresh = DangerousPlace(reported_by_id=alice.id, place_type=0, gps="2,2", reported_at=now - timedelta(days=1))
    db.add_all([old, fresh])
    db.commit()

    sweeper = RetentionSweeper(SessionLocal, retention_days=7)
    assert sweeper.cleanup_dangerous_places(now) == 1
    assert sweeper.cleanup_dangerous_places(now) == 0

    db.expire_all()
    assert db.get(DangerousPlace, old.id).reported_by_id == ANONYMIZED_REPORTER_ID
    assert db.get(DangerousPlace, fresh.id).reported_by_id == alice.id


def test_journey_sweep_rolls_back_on_failure(db):
    now = utcnow()
    alice, bob = _user(db, "alice"), _user(db, "bob")
    old = _journey(db, [alice, bob], now - timedelta(days=30))
    db.commit()

    class FailingSession:
        def __init__(self):
            self._session = SessionLocal()
            self.calls = 0

        def __getattr__(self, name):
            return getattr(self._session, name)

        def execute(self, statement, *args, **kwargs):
            self.calls += 1
            if self.calls == 2:
                raise RuntimeError("database went away")
            return self._session.execute(statement, *args, **kwargs)

    with pytest.raises(RuntimeError):
        RetentionSweeper(FailingSession).cleanup_journeys(now)

    db.expire_all()
    assert _count(db, JourneyMessage, JourneyMessage.journey_id == old.id) == 2
    assert _count(db, JourneyParticipant, JourneyParticipant.journey_id == old.id) == 2


def test_loop_survives_a_failed_tick(monkeypatch):
    sweeper = RetentionSweeper(SessionLocal, interval_seconds=0)
    calls = []

    def flaky_run_once():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    monkeypatch.setattr(sweeper, "run_once", flaky_run_once)

    async def scenario():
        task = asyncio.create_task(sweeper.run_forever())
        for _ in range(500):
            if len(calls) >= 2:
                break
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert len(calls) >= 2
