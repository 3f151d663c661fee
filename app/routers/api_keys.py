"""
API Key management endpoints.

This module contains endpoints for creating and managing API keys. The full
key is returned only by the create endpoint; every other response masks it.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.crud.api_key import api_key as api_key_crud
from app.crud.user import user as user_crud
from app.database import get_db
from app.dependencies.auth import get_current_user
from app.dependencies.permissions import Capability, authorize
from app.models.api_key import APIKey
from app.models.user import User
from app.schemas.api_key import APIKeyCreate, APIKeyCreateResponse, APIKeyResponse, APIKeyUpdate
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/apikeys",
    tags=["API Keys"],
    responses={
        400: {"description": "Bad Request"},
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "API key not found"},
    },
)


async def _get_owned_key(db: AsyncSession, apikey_id: int, current_user: User) -> APIKey:
    """Load a key and check the caller owns it (or is admin)."""
    api_key_obj = await api_key_crud.get(db, apikey_id)
    if not api_key_obj:
        raise NotFoundError("API key not found")
    authorize(current_user, Capability.OWNER, owner_id=api_key_obj.user_id)
    return api_key_obj


def _with_owner(rows) -> List[APIKeyResponse]:
    responses = []
    for key_obj, username in rows:
        item = APIKeyResponse.model_validate(key_obj)
        item.username = username
        responses.append(item)
    return responses


@router.get(
    "",
    response_model=List[APIKeyResponse],
    summary="List API keys",
    description="Admins see every key with its owner's username; other users see their own keys.",
)
async def list_api_keys(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List API keys (masked)."""
    scope = None if current_user.is_admin else current_user.id
    rows = await api_key_crud.get_multi_with_owner(db, user_id=scope)
    return _with_owner(rows)


@router.get("/me", response_model=List[APIKeyResponse], summary="List my API keys")
async def list_my_api_keys(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List the caller's own API keys (masked)."""
    return await api_key_crud.get_multi_by_user(db, user_id=current_user.id)


@router.post(
    "",
    response_model=APIKeyCreateResponse,
    summary="Create a new API key",
    description="Create a new API key. The full key is returned only once - store it securely!",
)
async def create_api_key(
    api_key_data: APIKeyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Create a new API key.

    **Request Body:**
    ```json
    {
        "name": "dev",
        "userId": 7,
        "expires_at": "2027-01-01T00:00:00Z"
    }
    ```

    ``userId`` defaults to the caller; only admins may create keys for
    other users. ``expires_at`` defaults to one year from now.

    Raises:
        ForbiddenError: Non-admin creating a key for someone else
        NotFoundError: If the target user does not exist
    """
    target_user_id = api_key_data.user_id if api_key_data.user_id is not None else current_user.id
    authorize(current_user, Capability.SELF, owner_id=target_user_id)

    if not await user_crud.exists(db, target_user_id):
        raise NotFoundError("User not found")

    api_key_obj = await api_key_crud.create(
        db,
        user_id=target_user_id,
        name=api_key_data.name,
        expires_at=api_key_data.expires_at,
    )
    return api_key_obj


@router.get("/user/{user_id}", response_model=List[APIKeyResponse], summary="List a user's API keys")
async def list_user_api_keys(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List the keys owned by one user. Self or admin."""
    authorize(current_user, Capability.SELF, owner_id=user_id)
    return await api_key_crud.get_multi_by_user(db, user_id=user_id)


@router.get("/{apikey_id}", response_model=APIKeyResponse)
async def read_api_key(
    apikey_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get one API key (masked). Owner or admin."""
    return await _get_owned_key(db, apikey_id, current_user)


@router.put("/{apikey_id}", response_model=APIKeyResponse)
async def update_api_key(
    apikey_id: int,
    api_key_in: APIKeyUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Partially update an API key's name, active flag or expiry.

    The secret itself cannot be changed; a ``key`` field in the body is ignored.
    """
    api_key_obj = await _get_owned_key(db, apikey_id, current_user)
    updated = await api_key_crud.update(db, db_obj=api_key_obj, obj_in=api_key_in)
    logger.info(f"API key updated: id={apikey_id}, by user {current_user.id}")
    return updated


@router.put("/{apikey_id}/activate", response_model=APIKeyResponse)
async def activate_api_key(
    apikey_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Activate an API key. Owner or admin."""
    api_key_obj = await _get_owned_key(db, apikey_id, current_user)
    return await api_key_crud.activate(db, api_key=api_key_obj)


@router.put("/{apikey_id}/deactivate", response_model=APIKeyResponse)
async def deactivate_api_key(
    apikey_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Deactivate an API key. Owner or admin."""
    api_key_obj = await _get_owned_key(db, apikey_id, current_user)
    return await api_key_crud.deactivate(db, api_key=api_key_obj)


@router.delete("/{apikey_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_api_key(
    apikey_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete an API key permanently. Owner or admin."""
    await _get_owned_key(db, apikey_id, current_user)
    await api_key_crud.remove(db, id=apikey_id)
    logger.info(f"API key deleted: id={apikey_id}, by user {current_user.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
