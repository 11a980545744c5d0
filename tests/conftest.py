"""Shared fixtures: a fresh in-memory database per test."""

import os

# Before hallbook is imported: cheap bcrypt rounds and no file database
os.environ.setdefault("SECRET_HASH_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hallbook.database import Base, enable_sqlite_foreign_keys, get_db
from hallbook.domain.bookings.service import BookingService
from hallbook.main import app
from hallbook.models import Hall


@pytest.fixture
def engine():
    """In-memory SQLite shared across connections, with FK enforcement."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(test_engine, "connect", enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def halls(db):
    """Two halls: Main Hall and Chapel."""
    main_hall = Hall(name="Main Hall")
    chapel = Hall(name="Chapel")
    db.add_all([main_hall, chapel])
    db.commit()
    return main_hall, chapel


@pytest.fixture
def hall_id(halls):
    return halls[0].id


@pytest.fixture
def service(db):
    return BookingService(db)


@pytest.fixture
def client(session_factory, halls):
    """Test client whose requests use the in-memory database."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
