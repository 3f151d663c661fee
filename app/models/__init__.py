# Database models package

from app.models.base import BaseModel
from app.models.user import User
from app.models.api_key import APIKey

__all__ = [
    "BaseModel",
    "User",
    "APIKey",
]

# Configure all mappers after all models are imported
# This resolves bidirectional relationships defined with string references
from sqlalchemy.orm import configure_mappers
configure_mappers()
