"""Tenant content entities: data items, members and site configuration."""

from datetime import datetime
from typing import ClassVar

from pydantic import Field

from apps.base.models import TIMESTAMP_FIELDS, TimestampedEntity
from db.models import (
    BaseEntity,
    EntityDescriptor,
    FieldSpec,
    RelationSpec,
    entity_registry,
)

# AppData types that trigger push notifications
NOTIFIED_TYPES = ("post", "comment", "referral")


@entity_registry.register
class AppData(TimestampedEntity):
    """Generic content item (post, comment, referral, ...)."""

    descriptor: ClassVar[EntityDescriptor] = EntityDescriptor(
        type_name="AppData",
        id_field="name",
        fields={
            "name": FieldSpec("string"),
            "type": FieldSpec("string", indexed=True),
            "data": FieldSpec("object"),
            "createdBy": FieldSpec("string", indexed=True),
            "access": FieldSpec("string", indexed=True),
            **TIMESTAMP_FIELDS,
        },
        relations={
            "author": RelationSpec("belongs_to", "AppMember", key_from="createdBy"),
        },
    )

    name: str | None = Field(None, description="Item id, generated when unset")
    type: str | None = Field(None, description="Content type")
    data: dict[str, object] | None = Field(None, description="Free-form content")
    createdBy: str | None = Field(None, description="User name of the author")
    access: str | None = Field(
        None, description="Visibility; `public` items are served without a login"
    )


@entity_registry.register
class AppMember(TimestampedEntity):
    """Member of a tenant site."""

    descriptor: ClassVar[EntityDescriptor] = EntityDescriptor(
        type_name="AppMember",
        id_field="userName",
        fields={
            "userName": FieldSpec("string", required=True),
            "password": FieldSpec("string"),
            "firstName": FieldSpec("string", indexed=True),
            "lastName": FieldSpec("string", indexed=True),
            "preferredName": FieldSpec("string", indexed=True),
            "role": FieldSpec("string", indexed=True),
            "email": FieldSpec("string", indexed=True),
            "phone": FieldSpec("string", indexed=True),
            "memberData": FieldSpec("object"),
            **TIMESTAMP_FIELDS,
        },
        relations={
            "posts": RelationSpec("has_many", "AppData", key_to="createdBy"),
        },
    )

    userName: str
    password: str | None = None
    firstName: str | None = None
    lastName: str | None = None
    preferredName: str | None = None
    role: str | None = None
    email: str | None = None
    phone: str | None = None
    memberData: dict[str, object] | None = Field(
        None, description="Member settings (`pushToken`, `pushType`, ...)"
    )

    @property
    def display_name(self) -> str:
        """Preferred name, else first and last name."""
        if self.preferredName is not None:
            return self.preferredName
        return f"{self.firstName} {self.lastName}"

    @property
    def push_token(self) -> str | None:
        token = (self.memberData or {}).get("pushToken")
        return str(token) if token else None

    @property
    def push_platform(self) -> str:
        return "ios" if (self.memberData or {}).get("pushType") == "ios" else "android"


@entity_registry.register
class AppInfo(BaseEntity):
    """Site configuration and content, versioned through its flags."""

    descriptor: ClassVar[EntityDescriptor] = EntityDescriptor(
        type_name="AppInfo",
        id_field="name",
        fields={
            "name": FieldSpec("string"),
            "published": FieldSpec("boolean", default=False),
            "draft": FieldSpec("boolean", default=True),
            "previous": FieldSpec("boolean", default=False),
            "history": FieldSpec("boolean", default=False),
            "publishedDate": FieldSpec("date"),
            "info": FieldSpec("object"),
        },
    )

    name: str | None = None
    published: bool = False
    draft: bool = True
    previous: bool = False
    history: bool = False
    publishedDate: datetime | None = None
    info: dict[str, object] | None = None

    def feature_enabled(self, feature: str) -> bool:
        """Check a flag of `info.features`."""
        features = (self.info or {}).get("features")
        return isinstance(features, dict) and bool(features.get(feature))

    @property
    def title(self) -> str | None:
        content = (self.info or {}).get("content")
        return content.get("title") if isinstance(content, dict) else None
