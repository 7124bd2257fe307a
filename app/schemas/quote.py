"""Schemas for the quote catalog."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class QuoteResponse(BaseModel):
    id: int
    text: str
    author: str
    source: Optional[str] = None
    tags: Optional[List[str]] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class QuoteListResponse(BaseModel):
    """Paginated quote list."""
    items: List[QuoteResponse]
    total: int
    page: int
    limit: int
    pages: int
