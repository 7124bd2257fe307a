"""
Tests for settings parsing and the startup configuration check.
"""
from unittest.mock import patch

import pytest

from app.core.config import Settings
from app.main import check_required_settings


def make_settings(**values):
    # _env_file=None keeps a developer's local .env out of the tests
    return Settings(_env_file=None, **values)


def test_admin_secret_is_required():
    assert make_settings(ADMIN_SECRET=None).missing_required() == ["ADMIN_SECRET"]
    assert make_settings(ADMIN_SECRET="   ").missing_required() == ["ADMIN_SECRET"]
    assert make_settings(ADMIN_SECRET="s3cret").missing_required() == []


def test_smtp_credentials_required_once_host_is_set():
    config = make_settings(ADMIN_SECRET="s3cret", SMTP_HOST="smtp.example.com")

    assert config.missing_required() == ["SMTP_USER", "SMTP_PASSWORD"]

    config = make_settings(
        ADMIN_SECRET="s3cret",
        SMTP_HOST="smtp.example.com",
        SMTP_USER="mailer",
        SMTP_PASSWORD="pw",
    )
    assert config.missing_required() == []
    assert config.is_smtp_configured() is True


def test_startup_check_fails_without_admin_secret():
    with patch("app.core.config.settings.ADMIN_SECRET", None):
        with pytest.raises(RuntimeError, match="ADMIN_SECRET"):
            check_required_settings()


def test_startup_check_passes_with_test_settings():
    check_required_settings()


def test_database_uri_defaults_to_sqlite():
    assert make_settings(DATABASE_URL=None).sqlalchemy_database_uri.startswith("sqlite:///")


def test_heroku_style_postgres_url_is_rewritten():
    config = make_settings(DATABASE_URL="postgres://user:pw@db:5432/quotes")

    assert config.sqlalchemy_database_uri == "postgresql+psycopg2://user:pw@db:5432/quotes"


@pytest.mark.parametrize("raw,expected", [
    ('["https://a.example"]', ["https://a.example"]),
    ("https://a.example, https://b.example", ["https://a.example", "https://b.example"]),
])
def test_cors_origins_parsing(raw, expected):
    assert make_settings(CORS_ORIGINS=raw).CORS_ORIGINS == expected
