from __future__ import annotations

from datetime import time
from typing import Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from homelink_api.auth.security import create_access_token, hash_password
from homelink_api.config import settings
from homelink_api.db.database import Base, get_db
from homelink_api.main import app
from homelink_api.models.home_models import AccessPermission, Device, Room
from homelink_api.models.identity_models import Home, HomeMembership, User


PASSWORD = "ChangeMe123!"
PASSWORD_HASH = hash_password(PASSWORD)
ALL_DAY = (time(0, 0, 0), time(23, 59, 59))


def seed_home(db: Session) -> dict[str, str]:
    """Owner, member and stranger plus a UTC home with two rooms.

    The member may see "Kitchen" every day, all day, and nothing else.
    """
    owner = User(username="owner", email="owner@example.com", password_hash=PASSWORD_HASH)
    member = User(username="member", email="member@example.com", password_hash=PASSWORD_HASH)
    stranger = User(username="stranger", email="stranger@example.com", password_hash=PASSWORD_HASH)
    db.add_all([owner, member, stranger])
    db.flush()

    home = Home(name="Demo Home", owner_id=owner.id, timezone="UTC")
    db.add(home)
    db.flush()

    kitchen = Room(home_id=home.id, name="Kitchen", circuit_id="c1")
    garage = Room(home_id=home.id, name="Garage", circuit_id="c2")
    db.add_all([kitchen, garage])
    db.flush()

    lamp = Device(room_id=kitchen.id, name="Lamp", type="light", status="off")
    opener = Device(room_id=garage.id, name="Door", type="switch", status="off")
    db.add_all([lamp, opener])
    db.add(HomeMembership(home_id=home.id, user_id=member.id, role="member"))
    for day in range(7):
        db.add(
            AccessPermission(
                home_id=home.id,
                user_id=member.id,
                room_name="Kitchen",
                day_of_week=day,
                start_time=ALL_DAY[0],
                end_time=ALL_DAY[1],
            )
        )
    db.commit()

    return {
        "owner_id": owner.id,
        "member_id": member.id,
        "stranger_id": stranger.id,
        "home_id": home.id,
        "kitchen_id": kitchen.id,
        "garage_id": garage.id,
        "lamp_id": lamp.id,
        "opener_id": opener.id,
    }


def auth_headers(db: Session, user_id: str) -> dict[str, str]:
    user = db.get(User, user_id)
    token, _ = create_access_token(user=user, settings=settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def engine() -> Engine:
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def seed_db(session_factory: sessionmaker) -> Session:
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def seeded(seed_db: Session) -> dict[str, str]:
    return seed_home(seed_db)


@pytest.fixture
def client(session_factory: sessionmaker) -> TestClient:
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers_for(seed_db: Session) -> Callable[[str], dict[str, str]]:
    return lambda user_id: auth_headers(seed_db, user_id)
