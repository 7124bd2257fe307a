"""
Request authentication: API keys for catalog endpoints, operator secret for administration.
"""
import hmac
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import Depends, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import ForbiddenError, InvalidKeyError, MissingKeyError, PersistenceError
from app.services.key_store import KeyStore

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"
ADMIN_SECRET_HEADER = "X-Admin-Secret"

api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)
admin_secret_header = APIKeyHeader(name=ADMIN_SECRET_HEADER, auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """The API key resolved for the current request."""
    api_key_id: int
    name: str
    permissions: Tuple[str, ...] = ("read",)


def validate_api_key(
    api_key: Optional[str] = Security(api_key_header),
    db: Session = Depends(get_db),
) -> AuthContext:
    """
    Dependency authenticating a request by its X-API-Key header.

    Unknown and inactive keys fail the same way. A successful lookup bumps the
    key's usage counter; if that write fails the request still goes through.

    Raises:
        MissingKeyError: header absent or empty
        InvalidKeyError: no active key matches
    """
    if not api_key:
        logger.warning("API key missing from request")
        raise MissingKeyError()

    store = KeyStore(db)
    try:
        db_key = store.find_active_by_token(api_key)
    except SQLAlchemyError as e:
        logger.error(f"API key lookup failed: {e}", exc_info=True)
        raise PersistenceError() from e

    if db_key is None:
        logger.warning(f"Invalid API key attempted: {api_key[:4]}...")
        raise InvalidKeyError()

    context = AuthContext(
        api_key_id=db_key.id,
        name=db_key.name,
        permissions=tuple(db_key.permissions or ()),
    )

    try:
        store.record_usage(db_key.id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to record usage for API key {db_key.id}: {e}", exc_info=True)

    logger.debug(f"Authenticated with API key {db_key.id} ({db_key.key_prefix})")
    return context


def require_admin(admin_secret: Optional[str] = Security(admin_secret_header)) -> None:
    """
    Dependency gating administrative endpoints on the shared operator secret.

    The comparison is constant-time. An unconfigured secret rejects everyone.

    Raises:
        ForbiddenError: header absent or wrong
    """
    expected = settings.ADMIN_SECRET
    if (
        not admin_secret
        or not expected
        or not hmac.compare_digest(admin_secret.encode("utf-8"), expected.encode("utf-8"))
    ):
        logger.warning("Admin access denied")
        raise ForbiddenError()
