# CRUD operations package

from app.crud.base import CRUDBase
from app.crud.user import CRUDUser, user
from app.crud.api_key import CRUDAPIKey, api_key

__all__ = [
    "CRUDBase",
    "CRUDUser", "user",
    "CRUDAPIKey", "api_key",
]
