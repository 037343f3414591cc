"""Domain directory entry routing a tenant hostname to its database."""

from datetime import datetime
from typing import ClassVar

from pydantic import Field

from db.models import BaseEntity, EntityDescriptor, FieldSpec, entity_registry


@entity_registry.register
class Domain(BaseEntity):
    """Tenant directory entry."""

    descriptor: ClassVar[EntityDescriptor] = EntityDescriptor(
        type_name="Domain",
        id_field="hostname",
        fields={
            "hostname": FieldSpec("string", required=True),
            "database": FieldSpec("string", required=True),
            "redirect": FieldSpec("string"),
            "active": FieldSpec("boolean", default=False),
            "createdAt": FieldSpec("date"),
            "updatedAt": FieldSpec("date"),
        },
    )

    hostname: str = Field(..., description="Tenant hostname (record key)")
    database: str = Field(..., description="Target database of the tenant")
    redirect: str | None = Field(None, description="Hostname to redirect to")
    active: bool = Field(False, description="Whether the domain is live")
    createdAt: datetime | None = None
    updatedAt: datetime | None = None
