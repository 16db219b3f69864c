"""Pytest configuration and fixtures."""
import os

# Must be set before config.py is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["BCRYPT_ROUNDS"] = "4"

from datetime import datetime

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from tables import import_all_models
from Cache_module.redis_client import set_redis_client
from Membership_module.bootstrap import seed_default_memberships
from Member_module.Member_crud import add_member

import_all_models()

NOW = datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def engine():
    """Fresh in-memory database shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    """Session with the default membership groups seeded."""
    session = sessionmaker(bind=engine, autoflush=False, future=True)()
    seed_default_memberships(session)
    yield session
    session.close()


@pytest.fixture(autouse=True)
def redis_client():
    client = fakeredis.FakeRedis(decode_responses=True)
    set_redis_client(client)
    yield client
    set_redis_client(None)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_member(db, now):
    """Register a member through add_member and return its profile id."""
    counter = {"n": 0}

    def _make(joined=None, **overrides):
        counter["n"] += 1
        n = counter["n"]
        data = {
            "email": f"user{n}@example.com",
            "username": f"user{n}",
            "password": "secret",
            "first_name": f"First{n}",
            "last_name": f"Last{n}",
            "sex": "male",
            "match_sex": ["female"],
            "birth_date": "1990-01-01",
            "ip": "10.0.0.1",
            "country": "FR",
            "city": "Paris",
        }
        data.update(overrides)
        return add_member(db, data, now=joined or now)

    return _make
