"""Pytest fixtures: test client, in-memory SQLite, seed data, fake push transport."""
import os
import threading

import pytest
from fastapi.testclient import TestClient

# In-memory SQLite and mock auth; must be set before townhub is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("MOCK_AUTH", "true")
os.environ.setdefault("PUSH_PROVIDER", "none")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret")

from townhub.core.constants import ROLE_RESIDENT
from townhub.db import Base, SessionLocal, engine
from townhub.main import app
from townhub.models import Business, DeviceToken, Place, Profile, Town
from townhub.services.push import set_transport


class FakeTransport:
    """Accepts every device except the tokens listed in failing; records each attempt."""

    provider_id = "fake"

    def __init__(self, failing=(), raising=()):
        self.failing = set(failing)
        self.raising = set(raising)
        self.sent = []
        self._lock = threading.Lock()

    def send(self, token, platform, message):
        with self._lock:
            self.sent.append((token, platform, message))
        if token in self.raising:
            raise RuntimeError("provider unavailable")
        return token not in self.failing


class Seed:
    """Small row factory; every helper commits and returns the refreshed row."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def _save(self, row):
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def town(self, name="Hallstatt", **kwargs):
        n = self._next()
        return self._save(Town(name=name, slug=f"{name.lower()}-{n}", **kwargs))

    def place(self, town=None, name="Seehotel", tags=None):
        return self._save(Place(name=name, town_id=town.id if town else None, tags=tags or []))

    def profile(self, role=ROLE_RESIDENT, town=None, prefs=None, user_id=None):
        n = self._next()
        return self._save(
            Profile(
                user_id=user_id or f"user-{n}",
                email=f"user{n}@example.com",
                role=role,
                town_id=town.id if town else None,
                notification_preferences=prefs,
            )
        )

    def business(self, owner=None, town=None, place=None, tier="starter", name="Gasthof Post"):
        return self._save(
            Business(
                name=name,
                owner_id=owner.id if owner else None,
                town_id=town.id if town else None,
                place_id=place.id if place else None,
                tier=tier,
            )
        )

    def device(self, profile, token=None, platform="ios", is_active=True):
        n = self._next()
        return self._save(
            DeviceToken(
                token=token or f"ExponentPushToken[device-{n}]",
                user_id=profile.id,
                platform=platform,
                is_active=is_active,
            )
        )


@pytest.fixture(autouse=True)
def _tables():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(db):
    return Seed(db)


@pytest.fixture
def transport():
    fake = FakeTransport()
    set_transport(fake)
    yield fake
    set_transport(None)


@pytest.fixture(scope="function")
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers():
    """Builds the X-Mock-User-Id header for a profile (MOCK_AUTH=true)."""

    def _headers(profile) -> dict[str, str]:
        return {"X-Mock-User-Id": profile.user_id}

    return _headers
