"""Process-wide cache of tenant-scoped collection handles."""

import logging
from collections.abc import Mapping
from typing import Protocol

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from surrealdb import RecordID

from .exceptions import TenantNotFoundError, ValidationError
from .models import BaseEntity, DescriptorRegistry, EntityDescriptor, entity_registry
from .query_builder import Coercer
from .schema_generator import (
    CollectionSchema,
    ResolvedField,
    extract_indexes,
    generate_table_schema,
    surreal_type,
)
from .table import Row, SurrealTable
from .utils import collection_name, parse_datetime, sanitize_tenant_key, strip_local_suffix

logger = logging.getLogger(__name__)


class DirectoryEntry(Protocol):
    """Directory record routing a hostname to its database."""

    database: str | None


class TenantDirectory(Protocol):
    """Lookup of the target database of a tenant hostname."""

    async def find_by_id(self, hostname: str) -> DirectoryEntry | None: ...


class TableOpener(Protocol):
    """Source of table accessors bound to a database."""

    async def open_table(
        self,
        database: str,
        table: str,
        *,
        id_field: str = "id",
        coerce: Coercer | None = None,
    ) -> SurrealTable: ...


class CollectionHandle:
    """
    Binding of an entity type and a tenant to a physical table.

    Created as a placeholder by `ModelCache` and completed once its schema
    is resolved; after that it is never mutated. All CRUD runs against the
    tenant's database, in the table named after the entity type.
    """

    def __init__(
        self,
        descriptor: EntityDescriptor,
        tenant_key: str,
        database: str,
        model: type[BaseEntity] | None = None,
    ) -> None:
        """Create an unresolved (placeholder) handle."""
        self.descriptor = descriptor
        self.tenant_key = tenant_key
        self.name = collection_name(descriptor.type_name, tenant_key)
        self.database = database
        self.model = model
        self.schema: CollectionSchema | None = None
        self.table: SurrealTable | None = None
        self._adapters: dict[str, TypeAdapter] = {}

    def __repr__(self) -> str:
        state = "ready" if self.ready else "placeholder"
        return f"<CollectionHandle {self.name} db={self.database} {state}>"

    @property
    def ready(self) -> bool:
        """Whether the schema is resolved and the table bound."""
        return self.schema is not None and self.table is not None

    @property
    def type_name(self) -> str:
        return self.descriptor.type_name

    def complete(self, schema: CollectionSchema, table: SurrealTable) -> None:
        """Turn the placeholder into the resolved handle."""
        self.schema = schema
        self.table = table

    def _require_table(self) -> SurrealTable:
        if self.table is None:
            raise RuntimeError(f"Collection {self.name} is not initialized")
        return self.table

    # Data translation

    def coerce(self, field: str, value: object) -> object:
        """Convert ISO strings compared against date fields into datetimes."""
        if (
            self.schema is not None
            and isinstance(value, str)
            and self.schema.field_type(field) == "date"
        ):
            try:
                return parse_datetime(value)
            except ValueError:
                return value
        return value

    def _field_adapter(self, field_name: str) -> TypeAdapter | None:
        if self.model is None or field_name not in self.model.model_fields:
            return None
        adapter = self._adapters.get(field_name)
        if adapter is None:
            annotation = self.model.model_fields[field_name].annotation
            adapter = self._adapters[field_name] = TypeAdapter(annotation)
        return adapter

    def _check_unknown(self, data: Mapping[str, object], errors: list[str]) -> None:
        if self.schema is not None and not self.schema.strict:
            return
        errors.extend(
            f"unknown property '{name}'"
            for name in data
            if name not in self.descriptor.fields
        )

    def _check_nested(self, data: Mapping[str, object], errors: list[str]) -> None:
        if self.schema is None:
            return
        for field_name, resolved in self.schema.fields.items():
            nested = resolved.nested
            value = data.get(field_name)
            if nested is None or not nested.ready or value is None:
                continue
            items = value if isinstance(value, list) else [value]
            for item in items:
                if not isinstance(item, Mapping):
                    errors.append(f"{field_name}: expected {nested.type_name} object")
                    continue
                nested_errors = nested.check_document(item)
                errors.extend(f"{field_name}.{e}" for e in nested_errors)

    def check_document(self, data: Mapping[str, object]) -> list[str]:
        """Return the schema violations of a full document."""
        errors: list[str] = []
        self._check_unknown(data, errors)
        errors.extend(
            f"missing required property '{name}'"
            for name, spec in self.descriptor.fields.items()
            if spec.required and data.get(name) is None
        )
        self._check_nested(data, errors)
        return errors

    def validate(
        self, data: Mapping[str, object], *, partial: bool = False
    ) -> dict[str, object]:
        """
        Validate data written to the collection.

        Args:
            data: Entity data (full document or partial update)
            partial: Only validate the given properties

        Returns:
            The validated data with defaults applied (full documents)

        Raises:
            ValidationError: On unknown properties, missing required
                properties or values of the wrong type

        """
        errors: list[str] = []
        self._check_unknown(data, errors)
        self._check_nested(data, errors)
        if errors:
            raise ValidationError(self.type_name, errors)

        if partial:
            return self._validate_partial(data)
        return self._validate_full(data)

    def _validate_partial(self, data: Mapping[str, object]) -> dict[str, object]:
        validated: dict[str, object] = {}
        errors: list[str] = []
        for name, value in data.items():
            adapter = self._field_adapter(name)
            if adapter is None or value is None:
                validated[name] = value
                continue
            try:
                validated[name] = adapter.dump_python(adapter.validate_python(value))
            except PydanticValidationError as exc:
                errors.extend(f"{name}: {err['msg']}" for err in exc.errors())
        if errors:
            raise ValidationError(self.type_name, errors)
        return validated

    def _validate_full(self, data: Mapping[str, object]) -> dict[str, object]:
        if self.model is not None:
            try:
                instance = self.model.model_validate(dict(data))
            except PydanticValidationError as exc:
                raise ValidationError(
                    self.type_name,
                    [
                        f"{'.'.join(map(str, err['loc']))}: {err['msg']}"
                        for err in exc.errors()
                    ],
                ) from exc
            return instance.to_data()

        document = {
            name: spec.default
            for name, spec in self.descriptor.fields.items()
            if spec.default is not None
        }
        document.update(data)
        errors = self.check_document(document)
        if errors:
            raise ValidationError(self.type_name, errors)
        return document

    def to_storage(
        self, data: Mapping[str, object]
    ) -> tuple[object | None, dict[str, object]]:
        """Split a validated document into its record key and stored content."""
        content = dict(data)
        key = content.pop(self.descriptor.id_field, None)
        return key, content

    def from_storage(self, row: Mapping[str, object]) -> dict[str, object]:
        """Map a stored row back to entity data (record key -> id field)."""
        data = dict(row)
        record_id = data.pop("id", None)
        if isinstance(record_id, RecordID):
            data[self.descriptor.id_field] = record_id.id
        elif isinstance(record_id, str):
            data[self.descriptor.id_field] = record_id.split(":", 1)[-1]
        elif record_id is not None:
            data[self.descriptor.id_field] = record_id
        return data

    def _rows(self, rows: list[Row]) -> list[dict[str, object]]:
        return [self.from_storage(row) for row in rows if row]

    # Persisted model operations

    async def create(self, data: Mapping[str, object]) -> dict[str, object]:
        """Validate and insert one document."""
        key, content = self.to_storage(self.validate(data))
        row = await self._require_table().insert(key, content)
        return self.from_storage(row) if row else {**content, self.descriptor.id_field: key}

    async def create_all(
        self, items: list[Mapping[str, object]]
    ) -> list[dict[str, object]]:
        """Validate all documents first, then insert them in order."""
        documents = [self.to_storage(self.validate(item)) for item in items]
        table = self._require_table()
        created = []
        for key, content in documents:
            row = await table.insert(key, content)
            created.append(
                self.from_storage(row) if row else {**content, self.descriptor.id_field: key}
            )
        return created

    async def find(
        self, filter: Mapping[str, object] | None = None  # noqa: A002
    ) -> list[dict[str, object]]:
        """Find documents matching a filter."""
        return self._rows(await self._require_table().select(filter))

    async def find_one(
        self, filter: Mapping[str, object] | None = None  # noqa: A002
    ) -> dict[str, object] | None:
        """Find the first document matching a filter."""
        rows = await self.find({**(filter or {}), "limit": 1})
        return rows[0] if rows else None

    async def find_by_id(
        self, entity_id: object, filter: Mapping[str, object] | None = None  # noqa: A002
    ) -> dict[str, object] | None:
        """Find a document by id."""
        fields = (filter or {}).get("fields")
        row = await self._require_table().select_record(entity_id, fields)
        return self.from_storage(row) if row else None

    async def update_all(
        self, where: Mapping[str, object] | None, data: Mapping[str, object]
    ) -> int:
        """Merge a partial update into all matching documents."""
        validated = self.validate(data, partial=True)
        validated.pop(self.descriptor.id_field, None)
        return await self._require_table().merge(where, validated)

    async def replace_by_id(
        self, entity_id: object, data: Mapping[str, object]
    ) -> dict[str, object] | None:
        """Replace a document, returning None when it does not exist."""
        document = {**data, self.descriptor.id_field: entity_id}
        _, content = self.to_storage(self.validate(document))
        row = await self._require_table().replace(entity_id, content)
        return self.from_storage(row) if row else None

    def _check_delete_filter(self, where: Mapping[str, object] | None) -> None:
        if self.schema is None or not self.schema.strict_delete or not where:
            return
        unknown = sorted(
            name
            for name in _where_fields(where)
            if name.split(".", 1)[0] not in self.descriptor.fields
        )
        if unknown:
            raise ValidationError(
                self.type_name, [f"unknown property '{name}'" for name in unknown]
            )

    async def delete_all(self, where: Mapping[str, object] | None = None) -> int:
        """
        Delete all matching documents.

        Collections with `strict_delete` reject filters on undeclared
        properties; otherwise such filters simply match nothing.
        """
        self._check_delete_filter(where)
        return await self._require_table().delete(where)

    async def delete_by_id(self, entity_id: object) -> int:
        """Delete a document by id, returning the number deleted."""
        return await self._require_table().delete_record(entity_id)

    async def count(self, where: Mapping[str, object] | None = None) -> int:
        """Count matching documents."""
        return await self._require_table().count(where)

    async def exists(self, entity_id: object) -> bool:
        """Check whether a document with the id exists."""
        return await self._require_table().select_record(entity_id, ["id"]) is not None


class ModelCache:
    """
    Resolve and cache collection handles per (entity type, tenant).

    Handles are keyed `{type}_app_{sanitized tenant}` and live for the
    process lifetime. Access is not locked: concurrent first use of the
    same pair may build two equivalent handles and the last registration
    wins.
    """

    def __init__(
        self,
        db_manager: TableOpener,
        directory: TenantDirectory,
        registry: DescriptorRegistry | None = None,
    ) -> None:
        """
        Initialize the cache.

        Args:
            db_manager: Opens table accessors on tenant databases
            directory: Domain directory used to route tenants to databases
            registry: Entity descriptors (defaults to the global registry)

        """
        self._db_manager = db_manager
        self._directory = directory
        self._registry = registry or entity_registry
        self._handles: dict[str, CollectionHandle] = {}

    @property
    def registry(self) -> DescriptorRegistry:
        return self._registry

    def __contains__(self, name: object) -> bool:
        return name in self._handles

    def get(self, name: str) -> CollectionHandle | None:
        """Return the cached handle registered under a collection name."""
        return self._handles.get(name)

    async def get_collection_handle(
        self, descriptor: EntityDescriptor, tenant_key: str
    ) -> CollectionHandle:
        """
        Return the tenant-scoped handle of an entity type.

        Args:
            descriptor: Entity type descriptor
            tenant_key: Resolved tenant key (hostname)

        Returns:
            Ready collection handle

        Raises:
            TenantNotFoundError: If the directory has no database for the tenant

        """
        name = collection_name(descriptor.type_name, tenant_key)
        handle = self._handles.get(name)
        if handle is not None and handle.ready:
            return handle

        database = await self._lookup_database(tenant_key)
        return await self._define(descriptor, tenant_key, database)

    async def _lookup_database(self, tenant_key: str) -> str:
        hostname = strip_local_suffix(tenant_key)
        entry = await self._directory.find_by_id(hostname) if hostname else None
        database = getattr(entry, "database", None)
        if not database:
            logger.warning("No directory entry for tenant %r", hostname)
            raise TenantNotFoundError(hostname)
        return database

    async def _define(
        self,
        descriptor: EntityDescriptor,
        tenant_key: str,
        database: str,
        registered: list[CollectionHandle] | None = None,
    ) -> CollectionHandle:
        """
        Register a placeholder, resolve nested types, then complete it.

        `registered` collects every handle added while defining the
        outermost type; if any step fails they are all evicted.
        """
        outermost = registered is None
        registered = [] if registered is None else registered
        handle = CollectionHandle(
            descriptor,
            tenant_key,
            database,
            model=self._registry.model_for(descriptor.type_name),
        )
        # Placeholder first: nested types referring back to this one reuse it
        self._handles[handle.name] = handle
        registered.append(handle)

        try:
            fields: dict[str, ResolvedField] = {}
            for field_name, spec in descriptor.fields.items():
                nested_type = spec.item_type if spec.type == "array" else spec.type
                nested = None
                if self._registry.is_entity_type(nested_type):
                    nested = await self._resolve_nested(
                        self._registry.get(nested_type), tenant_key, database, registered
                    )
                fields[field_name] = ResolvedField(
                    name=field_name,
                    spec=spec,
                    surreal_type=surreal_type(spec, self._registry),
                    nested=nested,
                )
            await bind_handle(self._db_manager, handle, fields)
        except Exception:
            if outermost:
                for defined in registered:
                    if self._handles.get(defined.name) is defined:
                        del self._handles[defined.name]
            raise

        logger.info(
            "Defined collection %s on database %s", handle.name, database
        )
        return handle

    async def _resolve_nested(
        self,
        descriptor: EntityDescriptor,
        tenant_key: str,
        database: str,
        registered: list[CollectionHandle],
    ) -> CollectionHandle:
        name = collection_name(descriptor.type_name, tenant_key)
        existing = self._handles.get(name)
        if existing is not None:
            return existing
        return await self._define(descriptor, tenant_key, database, registered)

    def invalidate(self, tenant_key: str | None = None) -> int:
        """
        Drop cached handles of one tenant, or all of them.

        Returns:
            Number of handles dropped

        """
        if tenant_key is None:
            dropped = len(self._handles)
            self._handles.clear()
            return dropped

        suffix = f"_app_{sanitize_tenant_key(tenant_key)}"
        names = [name for name in self._handles if name.endswith(suffix)]
        for name in names:
            del self._handles[name]
        return len(names)


async def bind_handle(
    db_manager: TableOpener,
    handle: CollectionHandle,
    fields: dict[str, ResolvedField],
) -> None:
    """Issue the table definition of a handle and complete it."""
    descriptor = handle.descriptor
    schema = CollectionSchema(
        table=descriptor.type_name,
        id_field=descriptor.id_field,
        fields=fields,
        indexes=extract_indexes(descriptor),
        strict_delete=descriptor.strict_delete,
    )
    table = await db_manager.open_table(
        handle.database,
        descriptor.type_name,
        id_field=descriptor.id_field,
        coerce=handle.coerce,
    )
    await table.define(generate_table_schema(schema))
    handle.complete(schema, table)


async def open_collection(
    db_manager: TableOpener,
    descriptor: EntityDescriptor,
    database: str,
    registry: DescriptorRegistry | None = None,
) -> CollectionHandle:
    """
    Bind an entity type without nested entities to a fixed database.

    Used for collections that are not tenant-scoped (the domain directory);
    the handle is not cached.

    Raises:
        ValueError: If the descriptor embeds other entity types

    """
    registry = registry or entity_registry
    fields: dict[str, ResolvedField] = {}
    for field_name, spec in descriptor.fields.items():
        nested_type = spec.item_type if spec.type == "array" else spec.type
        if registry.is_entity_type(nested_type):
            raise ValueError(
                f"{descriptor.type_name}.{field_name} embeds {nested_type}"
            )
        fields[field_name] = ResolvedField(
            name=field_name, spec=spec, surreal_type=surreal_type(spec, registry)
        )

    handle = CollectionHandle(
        descriptor, database, database, model=registry.model_for(descriptor.type_name)
    )
    await bind_handle(db_manager, handle, fields)
    logger.info("Opened collection %s on database %s", descriptor.type_name, database)
    return handle


def _where_fields(where: Mapping[str, object]) -> set[str]:
    """Field names referenced by a where object, through `and` / `or` groups."""
    names: set[str] = set()
    for key, value in where.items():
        if key in ("and", "or") and isinstance(value, list):
            for clause in value:
                if isinstance(clause, Mapping):
                    names |= _where_fields(clause)
        else:
            names.add(key)
    return names
