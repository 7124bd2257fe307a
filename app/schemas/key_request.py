"""Schemas for the key request workflow."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from app.models.key_request import KeyRequestStatus


class KeyRequestCreate(BaseModel):
    """Body of a key request submission. Blank values are rejected by the workflow."""
    name: str = Field(..., max_length=255)
    email: str = Field(..., max_length=320)
    usage: str = Field(..., max_length=5000, description="What the key will be used for")


class KeyRequestSubmitResponse(BaseModel):
    id: int
    status: KeyRequestStatus
    message: str


class KeyRequestResponse(BaseModel):
    """Key request as shown to operators."""
    id: int
    name: str
    email: str
    usage: str
    status: KeyRequestStatus
    api_key_id: Optional[int] = None
    created_at: datetime
    decided_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class KeyRequestListResponse(BaseModel):
    items: List[KeyRequestResponse]
    total: int


class KeyRequestApproveResponse(BaseModel):
    request_id: int
    api_key_id: int
    notification_sent: bool
    message: str


class KeyRequestRejectResponse(BaseModel):
    request_id: int
    notification_sent: bool
    message: str
