"""
Base CRUD operations.

This module contains base CRUD (Create, Read, Update, Delete) operations
that can be inherited by specific model CRUD classes.
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union
from pydantic import BaseModel
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.database import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Base CRUD operations class.

    Provides generic CRUD operations that can be used by specific model CRUD classes.
    """

    #: Columns an update may touch. None means every mapped column except the primary key.
    updatable_fields: Optional[frozenset] = None

    def __init__(self, model: Type[ModelType]):
        """
        Initialize CRUD operations for a specific model.

        Args:
            model: The SQLAlchemy model class
        """
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """
        Get a single record by ID.

        Args:
            db: Database session
            id: Record ID

        Returns:
            Model instance or None if not found
        """
        result = await db.execute(select(self.model).where(self.model.id == id))
        return result.scalars().first()

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 100
    ) -> List[ModelType]:
        """
        Get multiple records with pagination.

        Args:
            db: Database session
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of model instances
        """
        result = await db.execute(
            select(self.model).order_by(self.model.id).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def create(self, db: AsyncSession, *, obj_in: CreateSchemaType) -> ModelType:
        """
        Create a new record.

        Args:
            db: Database session
            obj_in: Input data schema

        Returns:
            Created model instance
        """
        db_obj = self.model(**obj_in.model_dump())
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    def _allowed_fields(self) -> frozenset:
        if self.updatable_fields is not None:
            return self.updatable_fields
        mapper = inspect(self.model)
        return frozenset(
            column.key for column in mapper.column_attrs
            if column.key != "id"
        )

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]]
    ) -> ModelType:
        """
        Apply a partial update to an existing record.

        Only keys present in ``obj_in`` are written; anything outside
        ``updatable_fields`` is ignored.

        Args:
            db: Database session
            db_obj: Existing model instance
            obj_in: Update data (schema or dict)

        Returns:
            Updated model instance
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)

        allowed = self._allowed_fields()
        changed = False
        for field, value in update_data.items():
            if field in allowed:
                setattr(db_obj, field, value)
                changed = True

        if not changed:
            return db_obj

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def remove(self, db: AsyncSession, *, id: int) -> Optional[ModelType]:
        """
        Remove a record by ID.

        Args:
            db: Database session
            id: Record ID to remove

        Returns:
            Removed model instance or None if not found
        """
        db_obj = await self.get(db, id)

        if db_obj:
            await db.delete(db_obj)
            await db.commit()

        return db_obj

    async def exists(self, db: AsyncSession, id: Any) -> bool:
        """
        Check if a record exists by ID.

        Args:
            db: Database session
            id: Record ID to check

        Returns:
            True if record exists, False otherwise
        """
        result = await db.execute(
            select(self.model.id).where(self.model.id == id)
        )
        return result.scalars().first() is not None
