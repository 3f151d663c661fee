"""
API Key database model.

This module contains the APIKey model. Keys identify callers to the external
inference service, which reads this table to validate them.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from app.models.base import BaseModel


class APIKey(BaseModel):
    """
    API Key model.

    The secret is stored as issued and never rewritten after insert.
    """

    __tablename__ = "api_keys"

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    key = Column(String(64), unique=True, index=True, nullable=False, comment="Opaque secret (64 hex chars)")
    name = Column(String(200), nullable=False, comment="Descriptive name for the key (e.g., 'dev')")
    is_active = Column(Boolean, default=True, nullable=False, comment="Whether the key is active")
    expires_at = Column(DateTime(timezone=True), nullable=True, comment="Expiry timestamp")

    user = relationship("User", back_populates="api_keys")

    __table_args__ = (
        Index("idx_api_key_user_active", "user_id", "is_active"),
    )

    def __repr__(self):
        return f"<APIKey(id={self.id}, name='{self.name}', user_id={self.user_id}, is_active={self.is_active})>"
