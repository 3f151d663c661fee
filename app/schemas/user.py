"""
User schemas.

Request bodies for user management and the public user representation.
The public schema never carries the password hash.
"""

from typing import Optional

from pydantic import EmailStr, Field

from app.schemas.base import BaseSchema, PartialUpdateSchema, TimestampSchema


class UserBase(BaseSchema):
    """Base user schema."""
    username: str = Field(..., min_length=1, max_length=150)
    email: EmailStr


class UserCreate(UserBase):
    """Schema for creating a new user."""
    password: str = Field(..., min_length=1)
    is_active: bool = True
    is_admin: bool = False


class UserUpdate(PartialUpdateSchema):
    """Schema for updating user information. Every field is optional."""
    username: Optional[str] = Field(None, min_length=1, max_length=150)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None
    is_admin: Optional[bool] = None


class UserPublic(TimestampSchema):
    """User as exposed by the API."""
    id: int
    username: str
    email: str
    is_active: bool
    is_admin: bool
