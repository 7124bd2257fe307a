"""
Key request approval workflow.

Drives a KeyRequest from ``pending`` to ``approved`` or ``rejected``:

    pending --approve--> approved   (key issued, key emailed)
    pending --reject---> rejected   (rejection emailed)

Both transitions happen at most once. Approval inserts the key and flips the
request status with a conditional update in one transaction, so two
concurrent approvals can never both issue a key. Emails go out only after
the commit; a delivery failure is reported in the result and the audit trail
but the transition stands.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    AlreadyApprovedError,
    ConflictError,
    InvalidTransitionError,
    KeyServiceError,
    NotFoundError,
    NotificationError,
    PersistenceError,
    ValidationError,
)
from app.models.key_request import KeyRequest, KeyRequestStatus
from app.services.activity_service import ActivityAction, Actor, ResourceType, log_activity
from app.services.key_issuer import KeyIssuer
from app.services.key_request_store import KeyRequestStore
from app.services.notifier import Notifier

logger = logging.getLogger(__name__)


@dataclass
class NotificationOutcome:
    """Best-effort result of the email that follows a transition."""
    attempted: bool = False
    delivered: bool = False
    error: Optional[str] = None


@dataclass
class TransitionResult:
    """
    Result of a workflow step.

    The state change is definitive once a result is returned; ``notification``
    only says whether the follow-up email made it.
    """
    request: KeyRequest
    api_key_id: Optional[int] = None
    notification: NotificationOutcome = field(default_factory=NotificationOutcome)


class ApprovalWorkflow:
    """Submit, approve and reject key requests."""

    def __init__(self, db: Session, notifier: Notifier, auto_approve: Optional[bool] = None):
        self.db = db
        self.notifier = notifier
        self.requests = KeyRequestStore(db)
        self.issuer = KeyIssuer(db)
        self.auto_approve = settings.AUTO_APPROVE_KEYS if auto_approve is None else auto_approve

    def submit(self, name: str, email: str, usage: str) -> TransitionResult:
        """
        Record a new pending key request.

        In auto-approval mode the request is approved right away; otherwise the
        operator is alerted. Either way the submission itself succeeds once the
        request is stored.
        """
        fields = {
            "name": (name or "").strip(),
            "email": (email or "").strip().lower(),
            "usage": (usage or "").strip(),
        }
        missing = [key for key, value in fields.items() if not value]
        if missing:
            raise ValidationError("Name, email, and usage description are required")

        key_request = self.requests.create(**fields)
        request_id = key_request.id
        logger.info(f"Key request {request_id} submitted by {fields['email']}")
        log_activity(
            self.db,
            actor=Actor.REQUESTER,
            action=ActivityAction.KEY_REQUEST_SUBMIT,
            resource_type=ResourceType.KEY_REQUEST,
            resource_id=request_id,
            details={"email": fields["email"]},
        )

        if self.auto_approve:
            try:
                return self.approve(request_id, actor=Actor.SYSTEM)
            except KeyServiceError as e:
                # The request is stored; it stays pending for an operator to handle
                logger.error(f"Auto-approval of key request {request_id} failed: {e}", exc_info=True)
                return TransitionResult(request=self.requests.get(request_id))

        outcome = self._notify(
            lambda: self.notifier.send_admin_alert(request_id, **fields),
            request_id,
            "admin_alert",
        )
        return TransitionResult(request=key_request, notification=outcome)

    def approve(self, request_id: int, actor: str = Actor.OPERATOR) -> TransitionResult:
        """
        Approve a pending request, issue its key and email it to the requester.

        Raises:
            NotFoundError: no such request
            AlreadyApprovedError: the request is (or concurrently became) approved
            InvalidTransitionError: the request was rejected
            PersistenceError: storage failure; nothing was committed
        """
        key_request = self._load(request_id)
        self._ensure_pending(key_request)
        name, email, usage = key_request.name, key_request.email, key_request.usage

        issued = self.issuer.generate_key(
            f"{name}'s Key",
            f"Requested by {email} for: {usage}",
            commit=False,
        )
        api_key_id = issued.api_key.id

        try:
            if not self.requests.mark_approved(request_id, api_key_id):
                # Someone else decided first; drop the uncommitted key
                self.db.rollback()
                self._raise_decided(request_id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to approve key request {request_id}: {e}", exc_info=True)
            raise PersistenceError() from e

        logger.info(f"Key request {request_id} approved by {actor}, issued key {api_key_id}")
        log_activity(
            self.db,
            actor=actor,
            action=ActivityAction.KEY_REQUEST_APPROVE,
            resource_type=ResourceType.KEY_REQUEST,
            resource_id=request_id,
            details={"api_key_id": api_key_id},
        )

        outcome = self._notify(
            lambda: self.notifier.send_api_key(email, name, issued.token),
            request_id,
            "api_key_delivery",
        )
        if not outcome.delivered:
            logger.error(
                f"Key request {request_id} is approved (key {api_key_id}) "
                f"but the key email to {email} was not delivered"
            )
        return TransitionResult(
            request=self.requests.get(request_id),
            api_key_id=api_key_id,
            notification=outcome,
        )

    def reject(self, request_id: int, actor: str = Actor.OPERATOR) -> TransitionResult:
        """
        Reject a pending request and notify the requester.

        Rejecting an approved request is refused (the issued key stays valid and
        the request keeps pointing at it); rejecting twice is refused as well.
        """
        key_request = self._load(request_id)
        self._ensure_pending(key_request)
        name, email = key_request.name, key_request.email

        try:
            if not self.requests.mark_rejected(request_id):
                self.db.rollback()
                self._raise_decided(request_id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to reject key request {request_id}: {e}", exc_info=True)
            raise PersistenceError() from e

        logger.info(f"Key request {request_id} rejected by {actor}")
        log_activity(
            self.db,
            actor=actor,
            action=ActivityAction.KEY_REQUEST_REJECT,
            resource_type=ResourceType.KEY_REQUEST,
            resource_id=request_id,
        )

        outcome = self._notify(
            lambda: self.notifier.send_rejection(email, name),
            request_id,
            "rejection",
        )
        return TransitionResult(request=self.requests.get(request_id), notification=outcome)

    def _load(self, request_id: int) -> KeyRequest:
        try:
            key_request = self.requests.get(request_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load key request {request_id}: {e}", exc_info=True)
            raise PersistenceError() from e
        if key_request is None:
            raise NotFoundError("Key request not found")
        return key_request

    @staticmethod
    def _ensure_pending(key_request: KeyRequest) -> None:
        if key_request.status == KeyRequestStatus.APPROVED:
            raise AlreadyApprovedError()
        if key_request.status == KeyRequestStatus.REJECTED:
            raise InvalidTransitionError("Key request already rejected")

    def _raise_decided(self, request_id: int) -> None:
        """Raise the conflict matching the state another caller moved the request to."""
        self._ensure_pending(self._load(request_id))
        raise ConflictError("Key request changed concurrently")

    def _notify(self, send: Callable[[], object], request_id: int, kind: str) -> NotificationOutcome:
        """Run one email send, converting failure into an outcome instead of an exception."""
        try:
            sent = send()
        except NotificationError as e:
            log_activity(
                self.db,
                actor=Actor.SYSTEM,
                action=ActivityAction.NOTIFICATION_FAILED,
                resource_type=ResourceType.KEY_REQUEST,
                resource_id=request_id,
                details={"kind": kind, "error": e.message},
            )
            return NotificationOutcome(attempted=True, delivered=False, error=e.message)
        if sent is False:
            return NotificationOutcome()
        return NotificationOutcome(attempted=True, delivered=True)
