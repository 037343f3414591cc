"""Errors raised by the multi-tenant persistence layer."""


class RepositoryError(Exception):
    """Base class for persistence errors surfaced to callers."""


class TenantNotFoundError(RepositoryError):
    """No directory entry (or no target database) exists for a tenant key."""

    def __init__(self, tenant_key: str) -> None:
        """Store the unknown tenant key."""
        self.tenant_key = tenant_key
        super().__init__(f"Tenant not found: {tenant_key!r}")


class EntityNotFoundError(RepositoryError):
    """An id-scoped operation did not find its target record."""

    def __init__(self, entity_name: str, entity_id: object) -> None:
        """Store the entity type and id that were looked up."""
        self.entity_name = entity_name
        self.entity_id = entity_id
        super().__init__(f"Entity not found: {entity_name} with id {entity_id!r}")


class InvalidBodyError(RepositoryError):
    """A partial update was requested with an empty payload."""

    def __init__(self, entity_name: str, entity_id: object = None) -> None:
        """Store the entity type and id of the rejected update."""
        self.entity_name = entity_name
        self.entity_id = entity_id
        super().__init__(
            f"Invalid body for {entity_name} {entity_id!r}: no fields to update"
        )


class ValidationError(RepositoryError):
    """Data written to a collection violates its schema."""

    def __init__(self, entity_name: str, errors: list[str]) -> None:
        """Store the entity type and the individual violations."""
        self.entity_name = entity_name
        self.errors = errors
        super().__init__(f"Invalid {entity_name}: {'; '.join(errors)}")


class QueryFailedError(RuntimeError):
    """A statement was executed but rejected by the database."""

    def __init__(self, detail: str) -> None:
        """Store the database's error message."""
        self.detail = detail
        super().__init__(f"SurrealDB query failed: {detail}")
