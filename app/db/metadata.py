"""Metadata helpers over the registered entity descriptors."""

from .models import DescriptorRegistry, entity_registry


def _get_table_names(registry: DescriptorRegistry | None = None) -> set[str]:
    """Get the table names of all registered entity types."""
    registry = registry or entity_registry
    return {descriptor.type_name for descriptor in registry}


def _get_allowed_fields(registry: DescriptorRegistry | None = None) -> set[str]:
    """Get all field names declared by registered entity types."""
    registry = registry or entity_registry

    allowed_fields: set[str] = {"id"}
    for descriptor in registry:
        allowed_fields.update(descriptor.fields)
    return allowed_fields
