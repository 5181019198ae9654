import sys
import os

# Point the app at a throwaway database before anything imports it
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Project root, so tests can import main, database, mutations, utils, etc.
_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _root not in sys.path:
    sys.path.insert(0, _root)

from auth import hash_password
from database import Base, QueryCache, User, get_db, query_cache


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database shared by every session of one test."""
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
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def cache():
    return QueryCache()


def _make_user(db, email, full_name=None):
    user = User(email=email, full_name=full_name, password_hash=hash_password("secret123"))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db):
    return _make_user(db, "ada@example.com", "Ada Lovelace")


@pytest.fixture
def other_user(db):
    return _make_user(db, "grace@example.com", "Grace Hopper")


@pytest.fixture
def client(engine):
    from fastapi.testclient import TestClient
    from main import app

    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    query_cache.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
    query_cache.clear()


def _register(client, email, full_name):
    resp = client.post(
        "/auth/register",
        json={"email": email, "password": "secret123", "full_name": full_name},
    )
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    return _register(client, "ada@example.com", "Ada Lovelace")


@pytest.fixture
def other_headers(client):
    return _register(client, "grace@example.com", "Grace Hopper")
