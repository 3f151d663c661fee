"""
Authentication dependencies.

This module contains dependency injection functions that turn a session
token into the current user.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import UnauthorizedError
from app.crud.user import user as user_crud
from app.database import get_db
from app.models.user import User
from app.schemas.auth import TokenData
from app.utils.security import verify_token

# auto_error=False: missing credentials become our own uniform 401
security = HTTPBearer(auto_error=False)


def decode_session_token(token: str) -> TokenData:
    """
    Decode a session token into its identity claims.

    Raises:
        UnauthorizedError: If the token is malformed, forged or expired
    """
    payload = verify_token(token)
    if payload is None:
        raise UnauthorizedError()

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise UnauthorizedError()

    return TokenData(user_id=user_id, is_admin=bool(payload.get("is_admin", False)))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from the session token.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        User instance

    Raises:
        UnauthorizedError: If the token is missing or invalid, or the user
            no longer exists or is inactive
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()

    token_data = decode_session_token(credentials.credentials)

    user_obj = await user_crud.get(db, token_data.user_id)
    if not user_obj or not user_crud.is_active(user_obj):
        raise UnauthorizedError()

    return user_obj
