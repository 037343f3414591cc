"""Explicit entity descriptors and the base pydantic entity."""

import dataclasses
import logging
from collections.abc import Iterator, Mapping
from typing import ClassVar, Literal, Self, TypeVar

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

SCALAR_TYPES = frozenset({
    "string",
    "number",
    "boolean",
    "date",
    "object",
    "array",
    "any",
})


@dataclasses.dataclass(frozen=True)
class FieldSpec:
    """
    Storage definition of a single entity field.

    `type` is a scalar type from `SCALAR_TYPES` or the type name of another
    registered entity. For arrays, `item_type` follows the same rule.
    """

    type: str
    indexed: bool = False
    required: bool = False
    default: object = None
    item_type: str | None = None

    def __post_init__(self) -> None:
        """Reject item types on non-array fields."""
        if self.item_type is not None and self.type != "array":
            raise ValueError(f"item_type is only valid for arrays, got {self.type}")


@dataclasses.dataclass(frozen=True)
class RelationSpec:
    """
    Relation between two entity types, resolved through `include` filters.

    For `belongs_to`, `key_from` is a field of the source entity and
    `key_to` (default: the target's id field) is a field of the target.
    For `has_many` / `has_one`, `key_from` (default: the source's id field)
    is read from the source and `key_to` is the referencing field on the
    target.
    """

    kind: Literal["belongs_to", "has_many", "has_one"]
    target: str
    key_from: str | None = None
    key_to: str | None = None


@dataclasses.dataclass(frozen=True)
class EntityDescriptor:
    """Static description of an entity type used to build its collections."""

    type_name: str
    id_field: str
    fields: Mapping[str, FieldSpec]
    relations: Mapping[str, RelationSpec] = dataclasses.field(default_factory=dict)
    # Reject delete filters on undeclared fields instead of matching nothing
    strict_delete: bool = False

    def __post_init__(self) -> None:
        """Validate the id field is declared."""
        if self.id_field not in self.fields:
            raise ValueError(
                f"{self.type_name}: id field {self.id_field!r} is not declared"
            )

    @property
    def field_names(self) -> frozenset[str]:
        """Names of all declared fields."""
        return frozenset(self.fields)

    def indexed_fields(self) -> list[str]:
        """Declared fields marked as indexed, in declaration order."""
        return [
            name
            for name, spec in self.fields.items()
            if spec.indexed and name != self.id_field
        ]


class BaseEntity(BaseModel):
    """
    Base class for persisted domain entities.

    Subclasses declare their storage layout through the `descriptor` class
    attribute and are registered with `entity_registry.register`.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    descriptor: ClassVar[EntityDescriptor]

    def get_id(self) -> object:
        """Return the value of the entity's id field."""
        return getattr(self, self.descriptor.id_field, None)

    def to_data(self) -> dict[str, object]:
        """
        Return the values set on the entity, ready for persistence.

        Extra properties are kept so strict collections can reject them.
        """
        return self.model_dump(exclude_none=True)

    @classmethod
    def from_data(cls, data: Mapping[str, object]) -> Self:
        """Build an entity from stored data."""
        return cls.model_validate(dict(data))


EntityT = TypeVar("EntityT", bound=BaseEntity)


class DescriptorRegistry:
    """Registry of entity descriptors (and their models) by type name."""

    def __init__(self) -> None:
        """Create an empty registry."""
        self._descriptors: dict[str, EntityDescriptor] = {}
        self._models: dict[str, type[BaseEntity]] = {}

    def add(self, descriptor: EntityDescriptor) -> EntityDescriptor:
        """Register a descriptor that has no pydantic model."""
        existing = self._descriptors.get(descriptor.type_name)
        if existing is not None and existing is not descriptor:
            logger.warning("Replacing descriptor for %s", descriptor.type_name)
        self._descriptors[descriptor.type_name] = descriptor
        return descriptor

    def register(self, model: type[EntityT]) -> type[EntityT]:
        """Class decorator registering a `BaseEntity` subclass."""
        descriptor = model.descriptor
        self.add(descriptor)
        self._models[descriptor.type_name] = model
        return model

    def get(self, type_name: str) -> EntityDescriptor:
        """Return the descriptor for a type name."""
        try:
            return self._descriptors[type_name]
        except KeyError:
            raise KeyError(f"Unknown entity type: {type_name}") from None

    def model_for(self, type_name: str) -> type[BaseEntity] | None:
        """Return the pydantic model bound to a type name, if any."""
        return self._models.get(type_name)

    def is_entity_type(self, type_name: str | None) -> bool:
        """Check whether a field type refers to a registered entity."""
        return type_name is not None and type_name in self._descriptors

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._descriptors

    def __iter__(self) -> Iterator[EntityDescriptor]:
        return iter(self._descriptors.values())


entity_registry = DescriptorRegistry()
