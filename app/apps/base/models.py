"""Pydantic base models shared by tenant-scoped entities."""

from datetime import datetime

from pydantic import Field

from db.models import BaseEntity, FieldSpec

TIMESTAMP_FIELDS: dict[str, FieldSpec] = {
    "createdAt": FieldSpec("date", indexed=True),
    "updatedAt": FieldSpec("date", indexed=True),
}


class TimestampedEntity(BaseEntity):
    """Entity carrying creation and last update timestamps."""

    createdAt: datetime | None = Field(None, description="Creation timestamp")
    updatedAt: datetime | None = Field(None, description="Last update timestamp")
