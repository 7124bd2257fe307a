"""
Pytest configuration and fixtures.
"""
import re
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
from unittest.mock import patch

from app.core.database import Base, get_db
from app.core.exceptions import NotificationError
from app.main import app
from app.services.notifier import Notifier, get_notifier

# Import all models to ensure they register with Base.metadata
from app.models import APIKey, KeyRequest, Quote, ActivityLog  # noqa: F401

# Use file-based SQLite for testing (more reliable than in-memory, and shared across threads)
TEST_DATABASE_URL = "sqlite:///./test_quote_api.db"

ADMIN_SECRET = "test-admin-secret"
TOKEN_PATTERN = re.compile(r"qk_[0-9a-f]{64}")

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
    pool_pre_ping=False,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class RecordingNotifier(Notifier):
    """Notifier that keeps messages in memory, or fails every send when ``fail`` is set."""

    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send(self, to, subject, html_body):
        if self.fail:
            raise NotificationError("SMTP relay unavailable")
        self.sent.append({"to": to, "subject": subject, "body": html_body})

    def tokens_sent_to(self, email):
        """Distinct raw API keys found in messages delivered to ``email``, one entry per key."""
        tokens = []
        for message in self.sent:
            if message["to"] != email:
                continue
            for token in TOKEN_PATTERN.findall(message["body"]):
                if token not in tokens:
                    tokens.append(token)
        return tokens


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """
    Create all tables before tests run and drop them after all tests complete.
    """
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function", autouse=True)
def clean_tables():
    """Empty every table after each test so counts are exact."""
    yield
    db = TestingSessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    finally:
        db.close()


@pytest.fixture(scope="function", autouse=True)
def test_settings():
    """Known operator secret, manual approval, no SMTP relay, no admin alerts."""
    with patch("app.core.config.settings.ADMIN_SECRET", ADMIN_SECRET), \
            patch("app.core.config.settings.AUTO_APPROVE_KEYS", False), \
            patch("app.core.config.settings.SMTP_HOST", None), \
            patch("app.core.config.settings.ADMIN_EMAIL", None):
        yield


@pytest.fixture(scope="function")
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def client(notifier):
    """
    Create a test client using the test database and the recording notifier.

    A new session is created for each request, as FastAPI expects.
    """
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def admin_headers():
    return {"X-Admin-Secret": ADMIN_SECRET}


@pytest.fixture(scope="function")
def db_session():
    """
    Provide a database session for tests that need direct DB access.
    """
    db = TestingSessionLocal()
    try:
        yield db
        db.rollback()
    finally:
        db.close()


@pytest.fixture(scope="function")
def issued_key(db_session):
    """An active API key issued straight through the issuer."""
    from app.services.key_issuer import KeyIssuer
    return KeyIssuer(db_session).generate_key("Fixture Key", "used by tests")


@pytest.fixture(scope="function")
def session_factory():
    """Session factory for tests that open their own sessions (e.g. one per thread)."""
    return TestingSessionLocal
