"""Key request database model."""
import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Enum
from sqlalchemy.sql import func

from app.core.database import Base


class KeyRequestStatus(str, enum.Enum):
    """Key request states. pending is initial, the other two are terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class KeyRequest(Base):
    """An application for an API key awaiting an operator decision."""
    __tablename__ = "key_requests"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(320), nullable=False, index=True)
    usage = Column(Text, nullable=False)  # Free-text justification

    status = Column(
        Enum(
            KeyRequestStatus,
            native_enum=False,
            length=16,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=KeyRequestStatus.PENDING,
        index=True,
    )
    # Weak reference: the request does not own the key's lifecycle, so no FK
    api_key_id = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)
