"""
Shared fixtures: a throwaway SQLite database, user/post factories and
Bearer headers. Settings are read at import time, so the environment is
prepared before anything from ``app`` is imported.
"""

import itertools
import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="society-voices-tests-")

os.environ.update(
    {
        "DATABASE_URL": f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}",
        "UPLOAD_DIR": os.path.join(_TMP_DIR, "storage"),
        "LOG_FILE": os.path.join(_TMP_DIR, "logs", "app.log"),
        "DEBUG": "false",
        "RATE_LIMIT_ENABLED": "false",
        "REDIS_ENABLED": "false",
        "TELEGRAM_NOTIFICATION_ENABLED": "false",
        "PROTECTED_PRESIDENT_EMAIL": "president@society.org",
        "PROTECTED_PRESIDENT_PASSWORD": "President@123",
        "JWT_SECRET": "test-secret",
    }
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.database import Base, SessionLocal, engine  # noqa: E402
from app.core.init import init_protected_president  # noqa: E402
from app.core.security import PasswordHelper, jwt_manager, token_blacklist  # noqa: E402
from app.models.post import Post  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services import account_status  # noqa: E402
from main import app  # noqa: E402

PASSWORD = "Password@123"
PASSWORD_HASH = PasswordHelper.hash_password(PASSWORD)

LONG_CONTENT = (
    "Student societies thrive when members can speak freely and respectfully "
    "about the things that matter to them."
)


@pytest.fixture(autouse=True)
def clean_state():
    """Fresh tables and an empty token blacklist for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    token_blacklist._memory_blacklist.clear()
    token_blacklist._memory_user_logout.clear()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    # No context manager: the lifespan (create_all + seeding) is handled by fixtures
    return TestClient(app)


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(role="member", email=None, full_name=None, status=None, avatar_url=None):
        n = next(counter)
        user = User(
            email=email or f"member{n}@society.org",
            full_name=full_name or f"Member {n}",
            hashed_password=PASSWORD_HASH,
            role=role,
            avatar_url=avatar_url,
        )
        if status is not None:
            account_status.apply(user, status)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_post(db):
    counter = itertools.count(1)

    def _make(author, **overrides):
        n = next(counter)
        values = {
            "title": f"Voice number {n}",
            "excerpt": "A short excerpt for the feed.",
            "category": "Opinion",
            "content": LONG_CONTENT,
        }
        values.update(overrides)
        post = Post(author_id=author.id, **values)
        db.add(post)
        db.commit()
        db.refresh(post)
        return post

    return _make


@pytest.fixture
def protected_president(db):
    return init_protected_president(db)


@pytest.fixture
def president(make_user):
    return make_user(role="president", email="acting.president@society.org")


@pytest.fixture
def media_manager(make_user):
    return make_user(role="media_manager", email="media@society.org")


@pytest.fixture
def member(make_user):
    return make_user(email="member@society.org", full_name="Regular Member")


@pytest.fixture
def auth_headers():
    def _headers(user):
        access_token, _ = jwt_manager.create_token_pair(user)
        return {"Authorization": f"Bearer {access_token}"}

    return _headers
