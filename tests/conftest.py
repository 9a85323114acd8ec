"""
Test configuration and fixtures for QuickURL.
This centralizes all test setup, making individual tests clean.
"""

import os

# Must be set before the app and its settings are imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CACHE_BACKEND", "null")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from main import app
from quickurl.cache.strategies import InMemoryCache
from quickurl.database.connection import get_db, init_db, make_engine
from quickurl.dependencies import get_cache, get_clock
from quickurl.store.strategies import InMemoryURLStore, SQLAlchemyURLStore


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = None):
        self.now = now or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="function")
def engine(tmp_path):
    """File-backed SQLite database, fresh for each test."""
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def sql_store(db_session):
    return SQLAlchemyURLStore(db_session)


@pytest.fixture
def memory_store():
    return InMemoryURLStore()


@pytest.fixture(params=["sqlalchemy", "memory"])
def store(request):
    """Runs a test once per store implementation."""
    if request.param == "sqlalchemy":
        return request.getfixturevalue("sql_store")
    return request.getfixturevalue("memory_store")


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture(scope="function")
def client(session_factory, cache, clock):
    """
    Create a test client with database, cache and clock overridden.
    This is the main fixture that API tests will use.
    """
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
