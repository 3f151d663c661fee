"""
API Key CRUD operations.

This module contains CRUD operations specific to API key management.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.security import default_api_key_expiry, generate_api_key_plaintext, mask_api_key
from app.crud.base import CRUDBase
from app.models.api_key import APIKey
from app.models.user import User
from app.schemas.api_key import APIKeyCreate, APIKeyUpdate
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


class CRUDAPIKey(CRUDBase[APIKey, APIKeyCreate, APIKeyUpdate]):
    """
    CRUD operations for APIKey model.

    The ``key`` column is written once, on insert; it is not in
    ``updatable_fields``.
    """

    updatable_fields = frozenset({"name", "is_active", "expires_at"})

    async def create(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        name: str,
        expires_at: Optional[datetime] = None,
        is_active: bool = True
    ) -> APIKey:
        """
        Create a new API key for a user.

        Args:
            db: Database session
            user_id: Owner of the key (must exist)
            name: Descriptive name for the key
            expires_at: Expiry; one year from now when omitted
            is_active: Whether the key is active

        Returns:
            Created APIKey instance, carrying the full secret
        """
        db_obj = APIKey(
            user_id=user_id,
            key=generate_api_key_plaintext(),
            name=name,
            is_active=is_active,
            expires_at=expires_at or default_api_key_expiry(),
        )
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        logger.info(
            f"API key created: id={db_obj.id}, user_id={user_id}, key={mask_api_key(db_obj.key)}"
        )
        return db_obj

    async def get_multi_with_owner(
        self,
        db: AsyncSession,
        *,
        user_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 1000
    ) -> List[Tuple[APIKey, str]]:
        """
        List API keys together with their owner's username.

        Args:
            db: Database session
            user_id: Restrict to keys owned by this user
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of (APIKey, username) pairs
        """
        query = select(APIKey, User.username).join(User, APIKey.user_id == User.id)
        if user_id is not None:
            query = query.where(APIKey.user_id == user_id)
        result = await db.execute(query.order_by(APIKey.id).offset(skip).limit(limit))
        return [(row[0], row[1]) for row in result.all()]

    async def get_multi_by_user(self, db: AsyncSession, *, user_id: int) -> List[APIKey]:
        """Get every API key owned by a user."""
        result = await db.execute(
            select(APIKey).where(APIKey.user_id == user_id).order_by(APIKey.id)
        )
        return list(result.scalars().all())

    async def get_by_key(self, db: AsyncSession, *, key: str) -> Optional[APIKey]:
        """Get API key by its secret value."""
        result = await db.execute(select(APIKey).where(APIKey.key == key))
        return result.scalars().first()

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: APIKey,
        obj_in: Union[APIKeyUpdate, Dict[str, Any]]
    ) -> APIKey:
        """
        Apply a partial update to name, is_active or expires_at.

        Any other key, the secret included, is dropped by ``updatable_fields``.
        """
        update_data = obj_in if isinstance(obj_in, dict) else obj_in.changes()
        return await super().update(db, db_obj=db_obj, obj_in=update_data)

    async def deactivate(self, db: AsyncSession, *, api_key: APIKey) -> APIKey:
        """
        Deactivate an API key.

        Args:
            db: Database session
            api_key: APIKey instance to deactivate

        Returns:
            Updated APIKey instance
        """
        return await super().update(db, db_obj=api_key, obj_in={"is_active": False})

    async def activate(self, db: AsyncSession, *, api_key: APIKey) -> APIKey:
        """
        Activate an API key.

        Args:
            db: Database session
            api_key: APIKey instance to activate

        Returns:
            Updated APIKey instance
        """
        return await super().update(db, db_obj=api_key, obj_in={"is_active": True})


# Create instance of CRUDAPIKey
api_key = CRUDAPIKey(APIKey)
