"""Generate SurrealDB schema definitions from entity descriptors."""

import dataclasses
import logging
from typing import TYPE_CHECKING

from .models import DescriptorRegistry, EntityDescriptor, FieldSpec
from .utils import quote_identifier

if TYPE_CHECKING:
    from .model_cache import CollectionHandle

logger = logging.getLogger(__name__)

_SCALAR_SURREAL_TYPES = {
    "string": "string",
    "number": "number",
    "boolean": "bool",
    "date": "datetime",
    "object": "object",
    "array": "array",
    "any": "any",
}


@dataclasses.dataclass(frozen=True)
class ResolvedField:
    """A descriptor field translated to its storage definition."""

    name: str
    spec: FieldSpec
    surreal_type: str
    nested: "CollectionHandle | None" = None


@dataclasses.dataclass(frozen=True)
class CollectionSchema:
    """
    Storage definition of a tenant-scoped collection.

    `strict` rejects unknown fields on writes; `strict_delete` does the same
    for delete filters (off unless the descriptor asks for it).
    """

    table: str
    id_field: str
    fields: dict[str, ResolvedField]
    indexes: dict[str, list[str]]
    strict: bool = True
    strict_delete: bool = False

    def field_type(self, name: str) -> str | None:
        """Return the declared type of a top-level field, if declared."""
        resolved = self.fields.get(name.split(".", 1)[0])
        return resolved.spec.type if resolved else None


def surreal_type(spec: FieldSpec, registry: DescriptorRegistry) -> str:
    """
    Convert a field spec to a SurrealDB type string.

    Entity-typed fields are stored as embedded objects; optional fields are
    wrapped in `option<...>`.
    """
    if spec.type == "array":
        if spec.item_type is None:
            inner = "array"
        elif registry.is_entity_type(spec.item_type):
            inner = "array<object>"
        else:
            inner = f"array<{_SCALAR_SURREAL_TYPES.get(spec.item_type, 'any')}>"
    elif registry.is_entity_type(spec.type):
        inner = "object"
    elif spec.type in _SCALAR_SURREAL_TYPES:
        inner = _SCALAR_SURREAL_TYPES[spec.type]
    else:
        raise ValueError(f"Unknown field type: {spec.type}")

    if spec.required or inner == "any":
        return inner
    return f"option<{inner}>"


def extract_indexes(descriptor: EntityDescriptor) -> dict[str, list[str]]:
    """Build single-column index definitions for indexed fields."""
    return {
        f"idx_{descriptor.type_name.lower()}_{field_name}": [field_name]
        for field_name in descriptor.indexed_fields()
    }


def generate_table_schema(schema: CollectionSchema) -> str:
    """Generate SurrealDB table schema definition from a collection schema."""
    quoted_table = quote_identifier(schema.table)
    lines = [f"DEFINE TABLE IF NOT EXISTS {quoted_table} SCHEMALESS;"]

    for field_name, resolved in schema.fields.items():
        if field_name == schema.id_field or resolved.surreal_type == "any":
            continue
        quoted_field = quote_identifier(field_name)
        lines.append(
            f"DEFINE FIELD IF NOT EXISTS {quoted_field} ON {quoted_table} "
            f"TYPE {resolved.surreal_type};"
        )

    for index_name, index_fields in schema.indexes.items():
        quoted_index = quote_identifier(index_name)
        quoted_fields = ", ".join(quote_identifier(f) for f in index_fields)
        lines.append(
            " ".join([
                f"DEFINE INDEX IF NOT EXISTS {quoted_index}",
                f"ON {quoted_table}",
                f"COLUMNS {quoted_fields};",
            ])
        )

    return "\n".join(lines)
