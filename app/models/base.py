"""
Base database model.

Users and API keys share an integer primary key and a pair of
database-maintained timestamps.
"""

from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func

from app.database import Base


class BaseModel(Base):
    """Abstract base adding ``id``, ``created_at`` and ``updated_at``."""

    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    @declared_attr
    def created_at(cls):
        # Set by the database on insert
        return Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @declared_attr
    def updated_at(cls):
        # Refreshed on every ORM update, including partial ones
        return Column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"
