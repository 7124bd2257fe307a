"""
Activity log model for audit trail.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func

from app.core.database import Base


class ActivityLog(Base):
    """Activity log model for tracking key lifecycle actions."""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    # Who did it: "operator", "system" (auto-approval) or "requester"
    actor = Column(String(50), nullable=False)

    action = Column(String(100), nullable=False, index=True)  # e.g. "key_create", "key_request_approve"
    resource_type = Column(String(50), nullable=True, index=True)  # "api_key" or "key_request"
    resource_id = Column(Integer, nullable=True, index=True)

    details = Column(JSON, nullable=True)

    # Request metadata
    ip_address = Column(String(45), nullable=True)  # IPv4 or IPv6
    user_agent = Column(String(255), nullable=True)
