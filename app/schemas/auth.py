"""
Authentication schemas.

This module contains Pydantic schemas for authentication requests and responses.
"""

from pydantic import AliasChoices, BaseModel, EmailStr, Field

from app.schemas.base import BaseSchema
from app.schemas.user import UserPublic


class Token(BaseModel):
    """Token schema for authentication."""
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    """Decoded session token payload."""
    user_id: int
    is_admin: bool = False


class LoginRequest(BaseModel):
    """JSON sign-in body. The identifier may be an email or a username."""
    identifier: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("identifier", "email", "username"),
    )
    password: str = Field(..., min_length=1)


class SignupRequest(BaseModel):
    """Self-service registration body."""
    username: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(Token):
    """Response schema for token generation."""
    user: UserPublic
    expires_in: int  # seconds


class SessionIdentity(BaseSchema):
    """Identity attached to the current session."""
    id: int
    username: str
    email: str
    is_admin: bool
