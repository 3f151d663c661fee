"""
Authorization policy.

Every handler that touches a user record or an API key goes through
``authorize``; admins pass every check.
"""

import enum
from typing import Optional

from fastapi import Depends

from app.core.exceptions import ForbiddenError
from app.dependencies.auth import get_current_user
from app.models.user import User


class Capability(str, enum.Enum):
    """What the caller must be, relative to the resource."""

    ADMIN = "admin"
    SELF = "self"    # the target user record is the caller's own
    OWNER = "owner"  # the resource belongs to the caller


def is_allowed(actor: User, capability: Capability, owner_id: Optional[int] = None) -> bool:
    if actor.is_admin:
        return True
    if capability is Capability.ADMIN:
        return False
    return owner_id is not None and owner_id == actor.id


def authorize(actor: User, capability: Capability, owner_id: Optional[int] = None) -> None:
    """
    Enforce the policy for ``actor``.

    Args:
        actor: Current user
        capability: Required capability
        owner_id: Id of the target user (SELF) or of the resource owner (OWNER)

    Raises:
        ForbiddenError: If the actor lacks the capability
    """
    if not is_allowed(actor, capability, owner_id):
        raise ForbiddenError()


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Dependency for admin-only endpoints."""
    authorize(current_user, Capability.ADMIN)
    return current_user
