# backend/tests/conftest.py
"""
Pytest configuration for the session lifecycle test suite.

Every test gets its own in-memory SQLite database. Services take an
injectable clock, so time-dependent guards are driven by FrozenClock rather
than by sleeping or patching datetime.
"""

import os
import sys

# CRITICAL: Set testing mode BEFORE any app imports!
os.environ["is_testing"] = "true"
os.environ["notification_retry_enabled"] = "false"

# Add the backend directory to Python path so imports work
backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, backend_dir)

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth import create_access_token
from app.core.ulid_helper import generate_ulid
from app.database import Base, get_db
from app.main import fastapi_app as app  # Use FastAPI instance for tests
from app.models.session import SessionStatus, SessionType, SkillLevel, SkillSession
from app.models.user import AccountStatus, User, UserRole

# Fixed instant used as "now" by clock-driven tests
T0 = datetime(2030, 1, 7, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current

    def set(self, now: datetime) -> datetime:
        self.current = now
        return self.current


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture(scope="function")
def db():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db: Session):
    """Create a test client with the test database."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # Don't use context manager - the lifespan would start background work
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    if hasattr(app.state, "session_dispatcher"):
        del app.state.session_dispatcher


def _create_user(
    db: Session,
    first_name: str,
    *,
    role: str = UserRole.MEMBER.value,
    account_status: str = AccountStatus.ACTIVE.value,
    is_active: bool = True,
) -> User:
    user = User(
        id=generate_ulid(),
        email=f"{first_name.lower()}_{generate_ulid().lower()}@example.com",
        first_name=first_name,
        last_name="Tester",
        role=role,
        account_status=account_status,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def requester(db: Session) -> User:
    return _create_user(db, "Rita")


@pytest.fixture
def provider(db: Session) -> User:
    return _create_user(db, "Paolo")


@pytest.fixture
def outsider(db: Session) -> User:
    return _create_user(db, "Olga")


@pytest.fixture
def admin_user(db: Session) -> User:
    return _create_user(db, "Ada", role=UserRole.ADMIN.value)


@pytest.fixture
def suspended_user(db: Session) -> User:
    return _create_user(db, "Sam", account_status=AccountStatus.SUSPENDED.value)


@pytest.fixture
def make_session(db: Session, requester: User, provider: User) -> Callable[..., SkillSession]:
    """Persist a session row directly, bypassing the services."""

    def _make(
        *,
        scheduled_date: datetime = T0 + timedelta(days=1),
        duration_minutes: int = 60,
        status: str = SessionStatus.PENDING.value,
        requester_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        session_type: str = SessionType.ONLINE.value,
        meeting_link: Optional[str] = None,
        location: Optional[str] = None,
        created_at: Optional[datetime] = None,
        skill_name: str = "Sourdough baking",
    ) -> SkillSession:
        session = SkillSession(
            id=generate_ulid(),
            requester_id=requester_id or requester.id,
            provider_id=provider_id or provider.id,
            skill_name=skill_name,
            skill_category="Cooking",
            skill_level=SkillLevel.BEGINNER.value,
            scheduled_date=scheduled_date,
            duration_minutes=duration_minutes,
            timezone="UTC",
            session_type=session_type,
            meeting_link=meeting_link,
            location=location,
            status=status,
            created_at=created_at or T0,
        )
        db.add(session)
        db.commit()
        return session

    return _make


def auth_headers_for(user: User) -> Dict[str, str]:
    token = create_access_token({"sub": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers_requester(requester: User) -> Dict[str, str]:
    return auth_headers_for(requester)


@pytest.fixture
def auth_headers_provider(provider: User) -> Dict[str, str]:
    return auth_headers_for(provider)


@pytest.fixture
def auth_headers_outsider(outsider: User) -> Dict[str, str]:
    return auth_headers_for(outsider)


@pytest.fixture
def auth_headers_admin(admin_user: User) -> Dict[str, str]:
    return auth_headers_for(admin_user)
