"""
Persistence for issued API keys and their usage counters.
"""
import hashlib
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import KeyCollisionError, PersistenceError
from app.models.api_key import APIKey

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a raw API key token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class KeyStore:
    """Data access for the api_keys table."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, api_key: APIKey, commit: bool = True) -> APIKey:
        """
        Insert a new key record.

        With ``commit=False`` the insert is only flushed, so the caller can
        finish its own transaction around it. A failed insert rolls back the
        whole session transaction.

        Raises:
            KeyCollisionError: the key hash already exists (unique index)
            PersistenceError: any other storage failure
        """
        try:
            self.db.add(api_key)
            self.db.flush()
            if commit:
                self.db.commit()
                self.db.refresh(api_key)
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"API key insert rejected by unique index (prefix {api_key.key_prefix})")
            raise KeyCollisionError() from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store API key: {e}", exc_info=True)
            raise PersistenceError() from e
        return api_key

    def get(self, key_id: int) -> Optional[APIKey]:
        return self.db.query(APIKey).filter(APIKey.id == key_id).first()

    def find_active_by_token(self, token: str) -> Optional[APIKey]:
        """Look up an active key by exact token match. Inactive and unknown keys both return None."""
        return (
            self.db.query(APIKey)
            .filter(APIKey.key_hash == hash_token(token), APIKey.is_active.is_(True))
            .first()
        )

    def list_all(self) -> List[APIKey]:
        return self.db.query(APIKey).order_by(APIKey.created_at.desc(), APIKey.id.desc()).all()

    def record_usage(self, key_id: int, used_at: Optional[datetime] = None) -> bool:
        """
        Atomically bump the usage counter and last-used timestamp.

        The increment happens in SQL so concurrent authentications with the
        same key never lose an update.
        """
        used_at = used_at or datetime.now(timezone.utc)
        result = self.db.execute(
            update(APIKey)
            .where(APIKey.id == key_id)
            .values(usage_count=APIKey.usage_count + 1, last_used_at=used_at)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def update(
        self,
        key_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Optional[APIKey]:
        """Update display metadata and/or the active flag. Returns None if the key does not exist."""
        api_key = self.get(key_id)
        if api_key is None:
            return None

        if name is not None:
            api_key.name = name
        if description is not None:
            api_key.description = description
        if is_active is not None:
            api_key.is_active = is_active

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update API key {key_id}: {e}", exc_info=True)
            raise PersistenceError() from e
        self.db.refresh(api_key)
        return api_key

    def delete(self, key_id: int) -> bool:
        """Hard-delete a key. Returns False if it did not exist."""
        api_key = self.get(key_id)
        if api_key is None:
            return False
        try:
            self.db.delete(api_key)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete API key {key_id}: {e}", exc_info=True)
            raise PersistenceError() from e
        return True
