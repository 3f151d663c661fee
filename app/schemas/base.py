"""
Base Pydantic schemas.

Shared configuration for request and response schemas.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    Response schemas are built straight from ORM rows.
    """

    model_config = ConfigDict(from_attributes=True)


class TimestampSchema(BaseSchema):
    """Schema with timestamp fields."""

    created_at: datetime
    updated_at: datetime


class PartialUpdateSchema(BaseSchema):
    """
    Base for PUT bodies with partial-update semantics.

    Only fields present in the request (and not null) are applied.
    """

    def changes(self) -> dict:
        return {
            field: value
            for field, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }
