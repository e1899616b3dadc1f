"""
Pytest configuration and shared fixtures for ThrowBack API tests.
"""

import os
import operator
import tempfile

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key")
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["REDIS_URL"] = ""
os.environ["SENTRY_DSN"] = ""
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="throwback-uploads-"))

import pytest
from typing import Callable, Dict, Generator
from datetime import datetime, timedelta
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from throwback.main import app
from throwback.database import Base, get_db, enable_sqlite_foreign_keys
from throwback.models.user import User
from throwback.models.video import Video
from throwback.models.podcast import Podcast
from throwback.models.playlist import Playlist
from throwback.models.livestream import LiveStream
from throwback.models.enums import AccountStatus, UserRole, StreamStatus
from throwback.services.auth_service import AuthService
from throwback.utils.security import hash_password

TEST_PASSWORD = "Password123!"

# Database setup
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """
    Create a fresh in-memory SQLite database for each test.
    """
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(test_db: Session) -> Generator[TestClient, None, None]:
    """
    Create a test client with overridden database dependency.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# User fixtures
@pytest.fixture
def make_user(test_db: Session) -> Callable[..., User]:
    """
    Factory creating verified, active users.
    """
    def _make_user(
        email: str,
        role: UserRole = UserRole.USER,
        account_status: AccountStatus = AccountStatus.ACTIVE,
        email_verified: bool = True,
        first_name: str = "Test",
        last_name: str = "User"
    ) -> User:
        user = User(
            email=email,
            hashed_password=hash_password(TEST_PASSWORD),
            first_name=first_name,
            last_name=last_name,
            role=role.value,
            account_status=account_status.value,
            email_verified=email_verified,
            created_at=datetime.utcnow()
        )
        test_db.add(user)
        test_db.commit()
        test_db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def headers_for(test_db: Session) -> Callable[[User], Dict[str, str]]:
    """
    Factory issuing a session-backed bearer token for a user.
    """
    def _headers_for(user: User) -> Dict[str, str]:
        token = AuthService.create_user_session(test_db, user)
        return {"Authorization": f"Bearer {token}"}

    return _headers_for


@pytest.fixture
def test_user(make_user) -> User:
    return make_user("test@example.com", first_name="Alice", last_name="Martin")


@pytest.fixture
def other_user(make_user) -> User:
    return make_user("other@example.com", first_name="Bruno", last_name="Petit")


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user("admin@example.com", role=UserRole.ADMIN, first_name="Admin", last_name="Root")


@pytest.fixture
def superadmin_user(make_user) -> User:
    return make_user("superadmin@example.com", role=UserRole.SUPERADMIN, first_name="Super", last_name="Admin")


@pytest.fixture
def auth_headers(test_user: User, headers_for) -> Dict[str, str]:
    return headers_for(test_user)


@pytest.fixture
def other_headers(other_user: User, headers_for) -> Dict[str, str]:
    return headers_for(other_user)


@pytest.fixture
def admin_headers(admin_user: User, headers_for) -> Dict[str, str]:
    return headers_for(admin_user)


@pytest.fixture
def superadmin_headers(superadmin_user: User, headers_for) -> Dict[str, str]:
    return headers_for(superadmin_user)


# Content fixtures
@pytest.fixture
def test_video(test_db: Session) -> Video:
    video = Video(
        title="Thriller",
        youtube_url="https://www.youtube.com/watch?v=sOnqjkJTMaA",
        type="music",
        genre="Pop",
        artist="Michael Jackson",
        year=1982,
        decade="80s",
        duration=822,
        tags=["pop", "80s"]
    )
    test_db.add(video)
    test_db.commit()
    test_db.refresh(video)
    return video


@pytest.fixture
def test_podcast(test_db: Session) -> Podcast:
    podcast = Podcast(
        title="The Birth of Hip-Hop",
        episode=1,
        season=1,
        vimeo_url="https://vimeo.com/123456789",
        duration=3600,
        guest_name="Grandmaster Flash",
        topics=["hip-hop", "70s"],
        is_published=True
    )
    test_db.add(podcast)
    test_db.commit()
    test_db.refresh(podcast)
    return podcast


@pytest.fixture
def test_playlist(test_db: Session, test_user: User) -> Playlist:
    playlist = Playlist(name="Eighties Hits", description="Best of the 80s", owner_id=test_user.id, tags=["80s"])
    test_db.add(playlist)
    test_db.commit()
    test_db.refresh(playlist)
    return playlist


@pytest.fixture
def live_stream(test_db: Session, admin_user: User) -> LiveStream:
    now = datetime.utcnow()
    stream = LiveStream(
        title="Friday Night Disco",
        description="Live disco classics",
        scheduled_start=now - timedelta(minutes=10),
        scheduled_end=now + timedelta(hours=1),
        actual_start=now - timedelta(minutes=10),
        status=StreamStatus.LIVE.value,
        author_id=admin_user.id,
        tags=["disco"]
    )
    test_db.add(stream)
    test_db.commit()
    test_db.refresh(stream)
    return stream


@pytest.fixture
def scheduled_stream(test_db: Session, admin_user: User) -> LiveStream:
    now = datetime.utcnow()
    stream = LiveStream(
        title="Synthwave Sunday",
        scheduled_start=now + timedelta(days=1),
        scheduled_end=now + timedelta(days=1, hours=2),
        status=StreamStatus.SCHEDULED.value,
        author_id=admin_user.id
    )
    test_db.add(stream)
    test_db.commit()
    test_db.refresh(stream)
    return stream


# Captcha helpers
@pytest.fixture
def solve_captcha(client: TestClient) -> Callable[[], Dict[str, str]]:
    """
    Factory generating a captcha through the API and answering it.
    """
    operations = {"+": operator.add, "-": operator.sub, "*": operator.mul}

    def _solve_captcha() -> Dict[str, str]:
        data = client.get("/api/captcha/generate").json()
        left, op, right = data["question"].split(" ")[:3]
        answer = operations[op](int(left), int(right))
        return {"captcha_id": data["captcha_id"], "captcha_answer": str(answer)}

    return _solve_captcha
