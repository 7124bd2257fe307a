"""
Persistence for key requests.

State changes are conditional updates on ``status`` so that only one caller
can move a request out of ``pending``. They do not commit: the approval
workflow decides where the transaction ends.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import PersistenceError
from app.models.key_request import KeyRequest, KeyRequestStatus

logger = logging.getLogger(__name__)


class KeyRequestStore:
    """Data access for the key_requests table."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, name: str, email: str, usage: str) -> KeyRequest:
        key_request = KeyRequest(
            name=name,
            email=email,
            usage=usage,
            status=KeyRequestStatus.PENDING,
        )
        try:
            self.db.add(key_request)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store key request: {e}", exc_info=True)
            raise PersistenceError() from e
        self.db.refresh(key_request)
        return key_request

    def get(self, request_id: int) -> Optional[KeyRequest]:
        return self.db.query(KeyRequest).filter(KeyRequest.id == request_id).first()

    def list(self, status: Optional[KeyRequestStatus] = None) -> List[KeyRequest]:
        """List requests, newest first."""
        query = self.db.query(KeyRequest)
        if status is not None:
            query = query.filter(KeyRequest.status == status)
        return query.order_by(KeyRequest.created_at.desc(), KeyRequest.id.desc()).all()

    def _transition(self, request_id: int, target: KeyRequestStatus, **values) -> bool:
        result = self.db.execute(
            update(KeyRequest)
            .where(
                KeyRequest.id == request_id,
                KeyRequest.status == KeyRequestStatus.PENDING,
            )
            .values(status=target, decided_at=datetime.now(timezone.utc), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def mark_approved(self, request_id: int, api_key_id: int) -> bool:
        """pending -> approved. Returns False if the request was no longer pending."""
        return self._transition(request_id, KeyRequestStatus.APPROVED, api_key_id=api_key_id)

    def mark_rejected(self, request_id: int) -> bool:
        """pending -> rejected. Returns False if the request was no longer pending."""
        return self._transition(request_id, KeyRequestStatus.REJECTED)
