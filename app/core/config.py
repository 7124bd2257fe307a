"""
Application configuration settings.

Central configuration module using Pydantic BaseSettings with environment variable support.
Loads from .env file and environment variables. Everything here is read once at process
start; required values are checked by the startup hook, not on first use.
"""
import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file if it exists (python-dotenv)
env_path = Path(".env")
if env_path.exists():
    load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App settings
    APP_NAME: str = "Quote API"
    APP_ENV: str = Field(default="local")
    DEBUG: bool = Field(default=False)
    BASE_URL: str = Field(
        default="http://localhost:8000",
        description="Public base URL, used in links inside notification emails",
    )

    # Database settings
    DATABASE_URL: Optional[str] = Field(
        default=None,
        description="Database connection URL. Falls back to a local SQLite file when unset.",
    )
    DB_TIMEOUT: int = Field(
        default=10,
        description="Seconds to wait for a database connection or lock",
    )

    @property
    def sqlalchemy_database_uri(self) -> str:
        """
        Build SQLAlchemy database URI.

        Railway/Heroku style ``postgres://`` URLs are rewritten to the psycopg2 dialect.
        Without DATABASE_URL a SQLite file in the working directory is used.
        """
        if self.DATABASE_URL:
            if self.DATABASE_URL.startswith("postgres://"):
                return self.DATABASE_URL.replace("postgres://", "postgresql+psycopg2://", 1)
            return self.DATABASE_URL
        return "sqlite:///./quote_api.db"

    # Operator authentication
    ADMIN_SECRET: Optional[str] = Field(
        default=None,
        description="Shared operator secret expected in the X-Admin-Secret header (required)",
    )

    # Key request workflow
    AUTO_APPROVE_KEYS: bool = Field(
        default=False,
        description="Approve and issue a key immediately for every submitted key request",
    )
    KEY_GENERATION_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        description="How many fresh tokens to try when a generated key collides",
    )

    # Notification email (SMTP)
    SMTP_HOST: Optional[str] = Field(default=None, description="SMTP relay host; unset disables email")
    SMTP_PORT: int = Field(default=587)
    SMTP_USER: Optional[str] = Field(default=None)
    SMTP_PASSWORD: Optional[str] = Field(default=None)
    SMTP_USE_TLS: bool = Field(default=True, description="Issue STARTTLS after connecting")
    SMTP_TIMEOUT: float = Field(default=10.0, description="Seconds before an SMTP call is abandoned")
    EMAIL_FROM: str = Field(default='"Quote API" <noreply@localhost>')
    ADMIN_EMAIL: Optional[str] = Field(
        default=None,
        description="Address notified about new key requests (optional)",
    )

    # CORS settings
    CORS_ORIGINS: Union[str, List[str]] = Field(
        default='["http://localhost:3000", "http://localhost:8000"]',
    )

    @field_validator("CORS_ORIGINS")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from string or list."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                # If not JSON, treat as comma-separated
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    def is_smtp_configured(self) -> bool:
        """Check if an SMTP relay is configured."""
        return bool(self.SMTP_HOST and self.SMTP_HOST.strip())

    def missing_required(self) -> List[str]:
        """
        Return the names of required settings that are absent.

        ADMIN_SECRET is always required. SMTP credentials are only required
        once an SMTP host has been configured.
        """
        missing = []
        if not self.ADMIN_SECRET or not self.ADMIN_SECRET.strip():
            missing.append("ADMIN_SECRET")
        if self.is_smtp_configured():
            if not self.SMTP_USER:
                missing.append("SMTP_USER")
            if not self.SMTP_PASSWORD:
                missing.append("SMTP_PASSWORD")
        return missing


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
