"""
Activity logging service for audit trail.
"""
import logging
from typing import Optional, Dict, Any
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from fastapi import Request

from app.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    actor: str,
    action: str,
    resource_type: Optional[str] = None,
    resource_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> Optional[ActivityLog]:
    """
    Log an activity to the audit trail.

    Called after the action itself has committed. A failure to write the
    trail is logged and swallowed so it never reverses the action.

    Args:
        db: Database session
        actor: Who acted ("operator", "system" or "requester")
        action: Action name (see ActivityAction)
        resource_type: Type of resource affected (see ResourceType)
        resource_id: ID of the affected resource
        details: Additional JSON details about the action
        request: FastAPI request object (for IP/user agent extraction)

    Returns:
        Created ActivityLog record, or None if it could not be written
    """
    ip_address = None
    user_agent = None
    if request:
        if request.client:
            ip_address = request.client.host
        # Check for X-Forwarded-For header (common in proxies)
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            ip_address = forwarded_for.split(",")[0].strip()
        user_agent = request.headers.get("User-Agent")

    activity = ActivityLog(
        actor=actor,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent[:255] if user_agent else None,
    )

    try:
        db.add(activity)
        db.commit()
        db.refresh(activity)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Failed to record activity {action} for {resource_type}={resource_id}: {e}")
        return None

    logger.debug(f"Logged activity: {action} by {actor}")

    return activity


class Actor:
    """Constants for activity actors."""
    OPERATOR = "operator"
    SYSTEM = "system"
    REQUESTER = "requester"


class ActivityAction:
    """Constants for activity actions."""
    KEY_CREATE = "key_create"
    KEY_UPDATE = "key_update"
    KEY_DELETE = "key_delete"
    KEY_REQUEST_SUBMIT = "key_request_submit"
    KEY_REQUEST_APPROVE = "key_request_approve"
    KEY_REQUEST_REJECT = "key_request_reject"
    NOTIFICATION_FAILED = "notification_failed"


class ResourceType:
    """Constants for resource types."""
    API_KEY = "api_key"
    KEY_REQUEST = "key_request"
