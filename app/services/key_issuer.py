"""
API key issuance.

Tokens are 256 bits from ``secrets`` with a fixed prefix. They never depend on
the requester's name, email or usage text. Only the hash is persisted.
"""
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import KeyCollisionError, ValidationError
from app.models.api_key import APIKey
from app.services.key_store import KeyStore, hash_token

logger = logging.getLogger(__name__)

KEY_PREFIX = "qk_"
DISPLAY_TAIL_LEN = 4
DEFAULT_PERMISSIONS = ["read"]


def generate_token() -> str:
    """Generate a fresh random API key token."""
    return f"{KEY_PREFIX}{secrets.token_hex(32)}"


def display_hint(token: str) -> str:
    """Non-secret label shown in listings: the fixed marker and the last few characters."""
    return f"{KEY_PREFIX}...{token[-DISPLAY_TAIL_LEN:]}"


@dataclass
class IssuedKey:
    """A newly stored key together with its raw token (only available at issuance)."""
    api_key: APIKey
    token: str


class KeyIssuer:
    """Creates API key records."""

    def __init__(self, db: Session, max_attempts: Optional[int] = None):
        self.store = KeyStore(db)
        self.max_attempts = max_attempts or settings.KEY_GENERATION_ATTEMPTS

    def generate_key(
        self,
        name: str,
        description: Optional[str] = None,
        commit: bool = True,
    ) -> IssuedKey:
        """
        Generate and persist a new active key.

        Args:
            name: Display name, must not be blank
            description: Optional description
            commit: Commit immediately, or only flush into the caller's transaction

        Returns:
            IssuedKey with the stored record and the raw token

        Raises:
            ValidationError: blank name
            KeyCollisionError: every attempt collided with an existing key
            PersistenceError: storage failure
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required for API key")

        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            token = generate_token()
            api_key = APIKey(
                key_hash=hash_token(token),
                key_prefix=display_hint(token),
                name=name,
                description=description.strip() if description else None,
                usage_count=0,
                is_active=True,
                permissions=list(DEFAULT_PERMISSIONS),
            )
            try:
                self.store.add(api_key, commit=commit)
            except KeyCollisionError as e:
                logger.warning(f"Generated key collided (attempt {attempt}/{self.max_attempts}), retrying")
                last_error = e
                continue

            logger.info(f"Issued API key id={api_key.id} name={name!r} prefix={api_key.key_prefix}")
            return IssuedKey(api_key=api_key, token=token)

        raise last_error
