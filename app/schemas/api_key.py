"""
API Key schemas.

This module contains Pydantic schemas for API key requests and responses.
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field, field_validator

from app.core.security import mask_api_key
from app.schemas.base import BaseSchema, PartialUpdateSchema


class APIKeyCreate(BaseSchema):
    """Schema for creating a new API key."""
    name: str = Field(..., min_length=1, max_length=200, description="Descriptive name for the key (e.g., 'dev')")
    user_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("userId", "user_id"),
        description="Owner of the key; defaults to the caller",
    )
    expires_at: Optional[datetime] = Field(
        default=None,
        description="Expiry timestamp; defaults to one year from creation",
    )


class APIKeyUpdate(PartialUpdateSchema):
    """Mutable API key fields. The secret itself is not among them."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None


class APIKeyCreateResponse(BaseSchema):
    """API key creation response (includes the full key, shown only once)."""
    id: int
    user_id: int
    name: str
    key: str = Field(..., description="Full API key - store this securely, shown only once!")
    is_active: bool
    created_at: datetime
    expires_at: Optional[datetime] = None


class APIKeyResponse(APIKeyCreateResponse):
    """API key response with the secret masked to its last 8 characters."""
    username: Optional[str] = None

    @field_validator("key")
    @classmethod
    def mask_key(cls, v: str) -> str:
        return mask_api_key(v)
