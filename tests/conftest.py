"""Pytest fixtures for testing."""
from datetime import datetime
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from signlearn.config import settings
from signlearn.db.database import Base, get_db
from signlearn.db.init_db import seed_catalogue
from signlearn.db.models import User, UserActivity
from signlearn.main import app
from signlearn.services.sessions import game_sessions, quiz_sessions


@pytest.fixture(autouse=True)
def utc_timezone(monkeypatch):
    """Day boundaries in tests are UTC regardless of the host environment."""
    monkeypatch.setattr(settings, "TIMEZONE", "UTC")


@pytest.fixture(scope="function")
def test_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    factory = sessionmaker(bind=test_engine, autoflush=False, autocommit=False)
    db = factory()
    seed_catalogue(db)
    db.close()
    return factory


@pytest.fixture(scope="function")
def test_db(session_factory):
    """Seeded database session for each test."""
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def test_user(test_db):
    """Create a test user."""
    user = User(id="test_user_123", name="Asha", email="asha@example.com", password_hash="x")
    test_db.add(user)
    test_db.commit()
    return user


@pytest.fixture
def add_activity(test_db):
    """Insert an activity event with an explicit timestamp."""
    def _add(user_id, activity_type, details=None, created_at=None):
        event = UserActivity(
            user_id=user_id,
            type=activity_type,
            details=details,
            created_at=created_at or datetime.utcnow(),
        )
        test_db.add(event)
        test_db.commit()
        return event
    return _add


@pytest.fixture(scope="function")
def test_client(session_factory):
    """Create a test client backed by the in-memory database."""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.limiter.enabled = False

    client = TestClient(app)

    yield client

    app.dependency_overrides.clear()
    quiz_sessions.clear()
    game_sessions.clear()


@pytest.fixture
def auth_client(test_client):
    """Test client with a freshly signed-up account."""
    response = test_client.post("/api/auth/signup", json={
        "name": "Ravi",
        "email": "ravi@example.com",
        "password": "secret123",
    })
    assert response.status_code == 200
    return test_client
