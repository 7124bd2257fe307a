"""Schemas for API key management."""
from datetime import datetime
from typing import List, Optional
from pydantic import AliasChoices, BaseModel, Field


class APIKeyCreateRequest(BaseModel):
    """Request schema for creating a new API key."""
    name: str = Field(..., min_length=1, max_length=255, description="Label/name for the API key")
    description: Optional[str] = Field(None, max_length=2000)


class APIKeyResponse(BaseModel):
    """Response schema for API key (the secret is never included)."""
    id: int
    name: str
    description: Optional[str] = None
    key_prefix: str
    active: bool = Field(validation_alias=AliasChoices("is_active", "active"))
    permissions: List[str]
    usage_count: int
    last_used_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class APIKeyUpdateRequest(BaseModel):
    """Request schema for updating an API key."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    active: Optional[bool] = None


class APIKeyCreateResponse(BaseModel):
    """Response schema for API key creation (includes full key once)."""
    id: int
    key: str  # Full key - only returned once on creation
    name: str
    description: Optional[str] = None
    created_at: datetime


class APIKeyListResponse(BaseModel):
    """Response schema for listing API keys."""
    items: List[APIKeyResponse]
    total: int


class APIKeyDeleteResponse(BaseModel):
    message: str
    id: int
