"""Quote catalog model."""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON
from sqlalchemy.sql import func

from app.core.database import Base


class Quote(Base):
    """A quotation in the published catalog."""
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)
    text = Column(Text, nullable=False, unique=True)
    author = Column(String(255), nullable=False)
    source = Column(String(255), nullable=True)
    tags = Column(JSON, nullable=True)
    is_published = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
