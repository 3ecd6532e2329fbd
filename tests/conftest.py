import itertools
import os
from typing import Generator

# Point the app at a throwaway SQLite database before it is imported.
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", "sqlite:///./test_travelbuddy.db")
os.environ["CLEANUP_ENABLED"] = "false"
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient

from api.index import app
from travelbuddy.db import Base, SessionLocal, engine
from travelbuddy import models  # noqa: F401  registers the tables on Base.metadata
from travelbuddy.models import Place
from travelbuddy.sms import get_sms_sender


PASSWORD = "Secret123!"

PLACES = [
    Place(id=1, city="Eindhoven", district="Centrum", centre_gps="51.4416,5.4697"),
    Place(id=2, city="Eindhoven", district="Strijp", centre_gps="51.4480,5.4485"),
    Place(id=3, city="Best", district=None, centre_gps="51.5075,5.3953"),
]


class FakeSmsSender:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def send(self, to: str, body: str) -> None:
        self.messages.append((to, body))

    def last_code(self, to: str) -> str:
        body = next(body for phone, body in reversed(self.messages) if phone == to)
        return body.rsplit(" ", 1)[-1]


@pytest.fixture(scope="session", autouse=True)
def setup_db() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_db() -> None:
    """Ensure a clean DB state before each test, with the reference places seeded."""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    with SessionLocal() as session:
        session.add_all([Place(id=p.id, city=p.city, district=p.district, centre_gps=p.centre_gps) for p in PLACES])
        session.commit()


@pytest.fixture()
def sms() -> Generator[FakeSmsSender, None, None]:
    sender = FakeSmsSender()
    app.dependency_overrides[get_sms_sender] = lambda: sender
    yield sender
    app.dependency_overrides.pop(get_sms_sender, None)


@pytest.fixture()
def client(sms) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def register(client, sms):
    """Register and log in a user through the API, returning id, token and headers."""
    phones = itertools.count(10000001)

    def _register(username: str, phone: str | None = None) -> dict:
        phone = phone or f"06{next(phones)}"
        r = client.post(
            "/api/User/StartRegister",
            json={"username": username, "password": PASSWORD, "email": f"{username}@example.com", "phone_number": phone},
        )
        assert r.status_code == 202, r.text
        normalized = sms.messages[-1][0]
        r = client.post(
            "/api/User/VerifyRegister",
            json={"phone_number": phone, "code": sms.last_code(normalized)},
        )
        assert r.status_code == 201, r.text
        user_id = r.json()["id"]

        r = client.post("/api/User/Login", json={"username": username, "password": PASSWORD})
        assert r.status_code == 200, r.text
        token = r.json()["access_token"]
        return {"id": user_id, "token": token, "headers": {"Authorization": f"Bearer {token}"}, "phone": normalized}

    return _register


@pytest.fixture()
def buddies(client):
    """Make two registered users accepted buddies."""

    def _link(requester: dict, addressee: dict) -> None:
        r = client.post(f"/api/Buddy/Send/{addressee['id']}", headers=requester["headers"])
        assert r.status_code == 200, r.text
        r = client.patch(
            "/api/Buddy/Respond",
            json={"requester_id": requester["id"], "status": "Accepted"},
            headers=addressee["headers"],
        )
        assert r.status_code == 200, r.text

    return _link
