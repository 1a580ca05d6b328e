"""
Test configuration and fixtures.

Every test gets a fresh in-memory SQLite store. The API is exercised through
FastAPI's TestClient with get_db overridden to hand out sessions bound to
that store; service-level tests use the ``db`` session directly.
"""

import os

# Must be set BEFORE any imports of app.core.config / app.db.session
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_SECRET_KEY"] = "test-admin-secret"

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models import Facility, User


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def booking_day():
    """A day safely in the future so bookings are never rejected as past."""
    return date.today() + timedelta(days=7)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role="student", name=None):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=f"{role}{n}@university.edu",
            password_hash="unused",
            full_name=name or f"{role.title()} {n}",
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_facility(db):
    def _make_facility(name="Badminton Court 1", open_time="08:00", close_time="10:00", availability=True):
        facility = Facility(
            name=name,
            location="Sports Complex",
            availability=availability,
            capacity=4,
            open_time=open_time,
            close_time=close_time,
        )
        db.add(facility)
        db.commit()
        db.refresh(facility)
        return facility

    return _make_facility


@pytest.fixture
def facility(make_facility):
    return make_facility()


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token = create_access_token(subject=str(user.id), role=user.role)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
