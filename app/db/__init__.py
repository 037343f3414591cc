"""Database layer for tenant-scoped entities - descriptors, handles and repositories."""

from .exceptions import (
    EntityNotFoundError,
    InvalidBodyError,
    QueryFailedError,
    RepositoryError,
    TenantNotFoundError,
    ValidationError,
)
from .field_validation import sanitize_field_name, validate_field_name
from .model_cache import CollectionHandle, ModelCache, open_collection
from .models import (
    BaseEntity,
    DescriptorRegistry,
    EntityDescriptor,
    FieldSpec,
    RelationSpec,
    entity_registry,
)
from .query_builder import QueryBuilder
from .query_executor import execute_query
from .repository import MultiTenantRepository

__all__ = [
    "BaseEntity",
    "CollectionHandle",
    "DescriptorRegistry",
    "EntityDescriptor",
    "EntityNotFoundError",
    "FieldSpec",
    "InvalidBodyError",
    "ModelCache",
    "MultiTenantRepository",
    "QueryFailedError",
    "QueryBuilder",
    "RelationSpec",
    "RepositoryError",
    "TenantNotFoundError",
    "ValidationError",
    "entity_registry",
    "execute_query",
    "open_collection",
    "sanitize_field_name",
    "validate_field_name",
]
