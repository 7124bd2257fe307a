"""Database models."""
from app.models.api_key import APIKey
from app.models.key_request import KeyRequest, KeyRequestStatus
from app.models.quote import Quote
from app.models.activity_log import ActivityLog

__all__ = [
    "APIKey",
    "KeyRequest",
    "KeyRequestStatus",
    "Quote",
    "ActivityLog",
]
