"""
Users router.

User account management. Listing, creating and deleting accounts is admin
only; a user may read and edit their own record.
"""

from datetime import datetime, timezone
from typing import List

import httpx
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ProxyError, ValidationError
from app.crud.api_key import api_key as crud_api_key
from app.crud.user import user as crud_user
from app.database import get_db
from app.dependencies.auth import get_current_user
from app.dependencies.permissions import Capability, authorize, require_admin
from app.models.user import User
from app.schemas.user import UserCreate, UserPublic, UserUpdate
from app.services.detection_client import fetch_usage_stats, get_detection_client
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["users"],
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "User not found"},
    },
)

# Flags a user may never change on their own record
SELF_PROTECTED_FIELDS = ("is_admin", "is_active")


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user_obj = await crud_user.get(db, user_id)
    if not user_obj:
        raise NotFoundError("User not found")
    return user_obj


@router.get("", response_model=List[UserPublic])
async def list_users(
    skip: int = 0,
    limit: int = 100,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """List every user. Admin only; password hashes are never loaded."""
    return await crud_user.get_multi(db, skip=skip, limit=limit)


@router.post("", response_model=UserPublic)
async def create_user(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """
    Create a user. Admin only.

    Raises:
        ConflictError: If the username or email is taken (case-insensitive)
    """
    if await crud_user.find_conflict(db, username=user_in.username, email=user_in.email):
        raise ConflictError()

    user_obj = await crud_user.create(db, obj_in=user_in)
    logger.info(f"User {user_obj.id} created by admin {admin.id}")
    return user_obj


@router.get("/me", response_model=UserPublic)
async def read_current_user(current_user: User = Depends(get_current_user)):
    """Return the caller's own record."""
    return current_user


@router.get("/me/stats")
async def read_usage_stats(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    client: httpx.AsyncClient = Depends(get_detection_client),
):
    """
    Usage statistics from the inference service.

    Uses the X-API-Key header when given, otherwise the caller's newest
    active, unexpired key. The upstream status and JSON body are relayed
    as-is.
    """
    api_key_value = request.headers.get("x-api-key")
    if not api_key_value:
        now = datetime.now(timezone.utc)
        keys = await crud_api_key.get_multi_by_user(db, user_id=current_user.id)
        usable = [
            k for k in keys
            if k.is_active and (k.expires_at is None or _as_utc(k.expires_at) > now)
        ]
        if not usable:
            raise ValidationError("No active API key to report usage for")
        api_key_value = usable[-1].key

    try:
        upstream = await fetch_usage_stats(client, api_key=api_key_value)
    except httpx.HTTPError as exc:
        logger.error(f"Usage stats request failed: {exc.__class__.__name__}: {exc}")
        raise ProxyError("An unexpected error occurred in the proxy.", status_code=500)

    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type", "application/json"),
    )


@router.get("/{user_id}", response_model=UserPublic)
async def read_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a user by id. Self or admin."""
    authorize(current_user, Capability.SELF, owner_id=user_id)
    return await _get_user_or_404(db, user_id)


@router.put("/{user_id}", response_model=UserPublic)
async def update_user(
    user_id: int,
    user_in: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Partially update a user. Self or admin.

    Fields absent from the body are left unchanged. Nobody may change their
    own admin or active flag.

    Raises:
        ForbiddenError: Editing someone else without admin rights, or
            changing one's own role/status flags
        NotFoundError: If the user does not exist
        ConflictError: If the new username or email belongs to another user
    """
    authorize(current_user, Capability.SELF, owner_id=user_id)
    user_obj = await _get_user_or_404(db, user_id)

    changes = user_in.changes()
    if user_obj.id == current_user.id:
        for field in SELF_PROTECTED_FIELDS:
            if field in changes and changes[field] != getattr(user_obj, field):
                raise ForbiddenError("You cannot change your own role or status")

    if "username" in changes or "email" in changes:
        conflict = await crud_user.find_conflict(
            db,
            username=changes.get("username"),
            email=changes.get("email"),
            exclude_id=user_obj.id,
        )
        if conflict:
            raise ConflictError()

    return await crud_user.update(db, db_obj=user_obj, obj_in=user_in)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """
    Delete a user and every API key it owns. Admin only.

    Raises:
        ForbiddenError: If an admin tries to delete their own account
        NotFoundError: If the user does not exist
    """
    if user_id == admin.id:
        raise ForbiddenError("You cannot delete your own account")

    removed = await crud_user.remove(db, id=user_id)
    if not removed:
        raise NotFoundError("User not found")

    logger.info(f"User {user_id} deleted by admin {admin.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
