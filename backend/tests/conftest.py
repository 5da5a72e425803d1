"""Test fixtures for Hatchwatch API and service tests."""
from __future__ import annotations

import os

# Must be set before hatchwatch builds its engine
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import datetime, timezone
from typing import Dict, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from hatchwatch.database import Base, get_db
from hatchwatch.main import app
from hatchwatch.models import Device, DeviceState, UserDevice
from hatchwatch.routers.alerts import limiter
from hatchwatch.seed.seed_data import seed_animals


USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Iterator[Session]:
    session = session_factory()
    seed_animals(session)
    yield session
    session.close()


@pytest.fixture
def client(db, session_factory) -> Iterator[TestClient]:
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    limiter.enabled = False
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def headers() -> Dict[str, str]:
    return {"X-User-Id": USER_ID}


@pytest.fixture
def other_headers() -> Dict[str, str]:
    return {"X-User-Id": OTHER_USER_ID}


def make_device(db: Session, device_id: str = "INC-0001", user_id: str = USER_ID, **state) -> Device:
    """Insert a device linked to ``user_id``, with a state row when fields are given."""
    device = Device(device_id=device_id, name=f"Incubator {device_id}", location="Barn")
    db.add(device)
    db.add(UserDevice(user_id=user_id, device_id=device_id))
    if state:
        state.setdefault("updated_at", datetime.now(timezone.utc))
        db.add(DeviceState(device_id=device_id, **state))
    db.commit()
    return device


@pytest.fixture
def device(db) -> Device:
    return make_device(
        db,
        animal_type="chicken",
        day=5,
        temp=37.8,
        hum=55.0,
        target_temp=37.8,
        tol_temp=0.5,
        target_hum=55.0,
        tol_hum=5.0,
    )
