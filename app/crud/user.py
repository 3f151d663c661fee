"""
User CRUD operations.

This module contains CRUD operations specific to user management.
"""

from typing import List, Optional

from sqlalchemy import delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import defer

from app.crud.base import CRUDBase
from app.models.api_key import APIKey
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate
from app.utils.logging_config import get_logger
from app.utils.security import get_password_hash, verify_password

logger = get_logger(__name__)


class CRUDUser(CRUDBase[User, UserCreate, UserUpdate]):
    """
    CRUD operations for User model.
    """

    updatable_fields = frozenset({"username", "email", "hashed_password", "is_active", "is_admin"})

    async def create(self, db: AsyncSession, *, obj_in: UserCreate) -> User:
        """
        Create a new user with a hashed password.

        Uniqueness is checked by the caller with ``find_conflict``; the unique
        indexes back it up.

        Args:
            db: Database session
            obj_in: User creation data

        Returns:
            Created user instance
        """
        db_obj = User(
            username=obj_in.username,
            email=obj_in.email,
            hashed_password=get_password_hash(obj_in.password),
            is_active=obj_in.is_active,
            is_admin=obj_in.is_admin,
        )
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        logger.info(f"User created: id={db_obj.id}, username={db_obj.username}")
        return db_obj

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 100
    ) -> List[User]:
        """
        List users without their password hashes.

        The hash column is deferred with raise-on-load, so it is never read
        from the database for listings.
        """
        result = await db.execute(
            select(User)
            .options(defer(User.hashed_password, raiseload=True))
            .order_by(User.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[User]:
        """Get user by email address (case-insensitive)."""
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalars().first()

    async def get_by_username(self, db: AsyncSession, *, username: str) -> Optional[User]:
        """Get user by username (case-insensitive)."""
        result = await db.execute(select(User).where(func.lower(User.username) == username.lower()))
        return result.scalars().first()

    async def get_by_identifier(self, db: AsyncSession, *, identifier: str) -> Optional[User]:
        """
        Get user by email or username.

        Args:
            db: Database session
            identifier: Email address or username

        Returns:
            User instance or None if not found
        """
        ident = identifier.strip().lower()
        result = await db.execute(
            select(User).where(
                or_(func.lower(User.email) == ident, func.lower(User.username) == ident)
            )
        )
        return result.scalars().first()

    async def find_conflict(
        self,
        db: AsyncSession,
        *,
        username: Optional[str] = None,
        email: Optional[str] = None,
        exclude_id: Optional[int] = None,
    ) -> Optional[User]:
        """
        Find another user already holding ``username`` or ``email``.

        Comparison is case-insensitive. ``exclude_id`` skips the user being
        updated.
        """
        clauses = []
        if username:
            clauses.append(func.lower(User.username) == username.lower())
        if email:
            clauses.append(func.lower(User.email) == email.lower())
        if not clauses:
            return None

        query = select(User).where(or_(*clauses))
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        result = await db.execute(query)
        return result.scalars().first()

    async def update(self, db: AsyncSession, *, db_obj: User, obj_in: UserUpdate) -> User:
        """
        Partially update a user.

        Fields absent from the request are left untouched; a new password is
        hashed before storage.
        """
        update_data = obj_in.changes()
        password = update_data.pop("password", None)
        if password:
            update_data["hashed_password"] = get_password_hash(password)

        user_obj = await super().update(db, db_obj=db_obj, obj_in=update_data)
        if update_data:
            logger.info(f"User updated: id={user_obj.id}, fields={sorted(update_data)}")
        return user_obj

    async def authenticate(self, db: AsyncSession, *, identifier: str, password: str) -> Optional[User]:
        """
        Check credentials.

        Returns the user only when it exists, is active and the password
        matches; callers cannot tell which check failed.
        """
        user_obj = await self.get_by_identifier(db, identifier=identifier)
        if not user_obj or not user_obj.is_active:
            # Hash anyway so unknown identifiers take as long as wrong passwords
            get_password_hash(password)
            return None
        if not verify_password(password, user_obj.hashed_password):
            return None
        return user_obj

    async def remove(self, db: AsyncSession, *, id: int) -> Optional[User]:
        """
        Delete a user together with every API key it owns.

        Args:
            db: Database session
            id: User ID

        Returns:
            Removed user instance or None if not found
        """
        user_obj = await self.get(db, id)
        if not user_obj:
            return None

        result = await db.execute(delete(APIKey).where(APIKey.user_id == id))
        await db.delete(user_obj)
        await db.commit()
        logger.info(f"User deleted: id={id}, api_keys_removed={result.rowcount}")
        return user_obj

    def is_active(self, user: User) -> bool:
        return user.is_active


# Create instance of CRUDUser
user = CRUDUser(User)
