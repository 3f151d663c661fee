# Pydantic schemas package

from app.schemas.base import BaseSchema, TimestampSchema, PartialUpdateSchema
from app.schemas.user import UserBase, UserCreate, UserUpdate, UserPublic
from app.schemas.auth import (
    Token, TokenData, LoginRequest, SignupRequest, TokenResponse, SessionIdentity
)
from app.schemas.api_key import (
    APIKeyCreate, APIKeyUpdate, APIKeyCreateResponse, APIKeyResponse
)

__all__ = [
    # Base schemas
    "BaseSchema", "TimestampSchema", "PartialUpdateSchema",

    # User schemas
    "UserBase", "UserCreate", "UserUpdate", "UserPublic",

    # Auth schemas
    "Token", "TokenData", "LoginRequest", "SignupRequest", "TokenResponse",
    "SessionIdentity",

    # API key schemas
    "APIKeyCreate", "APIKeyUpdate", "APIKeyCreateResponse", "APIKeyResponse",
]
