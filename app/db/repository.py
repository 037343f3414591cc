"""Tenant-scoped repository facade over cached collection handles."""

import logging
from collections.abc import Mapping
from typing import Generic, Protocol

from .exceptions import EntityNotFoundError, InvalidBodyError
from .model_cache import CollectionHandle
from .models import (
    BaseEntity,
    DescriptorRegistry,
    EntityDescriptor,
    EntityT,
    RelationSpec,
)

logger = logging.getLogger(__name__)

Filter = Mapping[str, object]
Where = Mapping[str, object]


class HandleSource(Protocol):
    """Resolves collection handles (the model cache, or a fixed binding)."""

    @property
    def registry(self) -> DescriptorRegistry: ...

    async def get_collection_handle(
        self, descriptor: EntityDescriptor, tenant_key: str
    ) -> CollectionHandle: ...


class MultiTenantRepository(Generic[EntityT]):
    """
    CRUD repository for one entity type within one tenant.

    Every operation first obtains the tenant's collection handle from the
    model cache, so an unknown tenant fails with `TenantNotFoundError`
    regardless of the entity type.

    Example:
        ```python
        members = MultiTenantRepository(AppMember, model_cache, "acme.com")
        await members.create(AppMember(userName="ada", email="ada@acme.com"))
        await members.find({"where": {"role": "admin"}, "order": "userName ASC"})
        ```

    """

    def __init__(
        self,
        entity_cls: type[EntityT],
        model_cache: HandleSource,
        tenant_key: str,
    ) -> None:
        """
        Initialize the repository.

        Args:
            entity_cls: Registered entity model
            model_cache: Process-wide collection handle cache
            tenant_key: Resolved tenant key of the caller

        """
        self.entity_cls = entity_cls
        self.model_cache = model_cache
        self.tenant_key = tenant_key

    @property
    def descriptor(self) -> EntityDescriptor:
        return self.entity_cls.descriptor

    async def handle(self) -> CollectionHandle:
        """Resolve the collection handle of this entity type and tenant."""
        return await self.model_cache.get_collection_handle(
            self.descriptor, self.tenant_key
        )

    def _to_entity(self, data: Mapping[str, object]) -> EntityT:
        return self.entity_cls.from_data(data)

    def _not_found(self, entity_id: object) -> EntityNotFoundError:
        return EntityNotFoundError(self.descriptor.type_name, entity_id)

    @staticmethod
    def _document(entity: EntityT | Mapping[str, object]) -> dict[str, object]:
        if isinstance(entity, BaseEntity):
            return entity.to_data()
        return dict(entity)

    @staticmethod
    def _changes(data: EntityT | Mapping[str, object]) -> dict[str, object]:
        if isinstance(data, BaseEntity):
            return data.model_dump(
                include=set(data.descriptor.fields), exclude_unset=True
            )
        return dict(data or {})

    # Create

    async def create(self, entity: EntityT | Mapping[str, object]) -> EntityT:
        """Persist an entity as given and return the stored entity."""
        handle = await self.handle()
        stored = await handle.create(self._document(entity))
        logger.debug(
            "Created %s %s in %s",
            self.descriptor.type_name,
            stored.get(self.descriptor.id_field),
            handle.database,
        )
        return self._to_entity(stored)

    async def create_all(
        self, entities: list[EntityT | Mapping[str, object]]
    ) -> list[EntityT]:
        """Persist several entities, in order."""
        handle = await self.handle()
        stored = await handle.create_all([self._document(e) for e in entities])
        return [self._to_entity(data) for data in stored]

    async def save(self, entity: EntityT) -> EntityT:
        """Create the entity when new, otherwise replace the stored one."""
        entity_id = entity.get_id()
        if entity_id is None or not await self.exists(entity_id):
            return await self.create(entity)
        return await self.replace_by_id(entity_id, entity)

    # Read

    async def find(self, filter: Filter | None = None) -> list[EntityT]:  # noqa: A002
        """
        Find the entities matching a filter.

        Args:
            filter: `where`, `order`, `limit`, `skip`/`offset`, `fields`
                and `include` (relation names to resolve)

        Returns:
            Matching entities, with included relations attached

        """
        handle = await self.handle()
        rows = await handle.find(filter)
        rows = await self._include(rows, (filter or {}).get("include"))
        return [self._to_entity(row) for row in rows]

    async def find_one(self, filter: Filter | None = None) -> EntityT | None:  # noqa: A002
        """Find the first entity matching a filter, or None."""
        handle = await self.handle()
        row = await handle.find_one(filter)
        if row is None:
            return None
        rows = await self._include([row], (filter or {}).get("include"))
        return self._to_entity(rows[0])

    async def find_by_id(
        self, entity_id: object, filter: Filter | None = None  # noqa: A002
    ) -> EntityT:
        """
        Find an entity by id.

        Raises:
            EntityNotFoundError: If no entity has the id

        """
        handle = await self.handle()
        row = await handle.find_by_id(entity_id, filter)
        if row is None:
            raise self._not_found(entity_id)
        rows = await self._include([row], (filter or {}).get("include"))
        return self._to_entity(rows[0])

    async def count(self, where: Where | None = None) -> dict[str, int]:
        """Count the entities matching a where object."""
        handle = await self.handle()
        return {"count": await handle.count(where)}

    async def exists(self, entity_id: object) -> bool:
        """Check whether an entity with the id exists."""
        handle = await self.handle()
        return await handle.exists(entity_id)

    # Update

    async def update_all(
        self,
        data: EntityT | Mapping[str, object],
        where: Where | None = None,
    ) -> dict[str, int]:
        """
        Apply a partial update to every matching entity.

        Raises:
            InvalidBodyError: If the update has no properties

        """
        changes = self._changes(data)
        if not changes:
            raise InvalidBodyError(self.descriptor.type_name)
        handle = await self.handle()
        return {"count": await handle.update_all(where, changes)}

    async def update_by_id(
        self, entity_id: object, data: EntityT | Mapping[str, object]
    ) -> None:
        """
        Apply a partial update to one entity.

        Raises:
            InvalidBodyError: If the update has no properties
            EntityNotFoundError: If no entity has the id

        """
        changes = self._changes(data)
        if not changes:
            raise InvalidBodyError(self.descriptor.type_name, entity_id)
        result = await self.update_all(changes, {self.descriptor.id_field: entity_id})
        if result["count"] == 0:
            raise self._not_found(entity_id)

    async def update(self, entity: EntityT) -> None:
        """Write the fields set on an entity back to its stored record."""
        await self.update_by_id(entity.get_id(), entity)

    async def replace_by_id(
        self, entity_id: object, data: EntityT | Mapping[str, object]
    ) -> EntityT:
        """
        Replace an entity entirely.

        Raises:
            EntityNotFoundError: If no entity has the id

        """
        handle = await self.handle()
        stored = await handle.replace_by_id(entity_id, self._document(data))
        if stored is None:
            raise self._not_found(entity_id)
        return self._to_entity(stored)

    # Delete

    async def delete_all(self, where: Where | None = None) -> dict[str, int]:
        """Delete every matching entity; matching nothing is not an error."""
        handle = await self.handle()
        return {"count": await handle.delete_all(where)}

    async def delete_by_id(self, entity_id: object) -> dict[str, int]:
        """
        Delete one entity.

        Raises:
            EntityNotFoundError: If no entity has the id

        """
        handle = await self.handle()
        deleted = await handle.delete_by_id(entity_id)
        if deleted == 0:
            raise self._not_found(entity_id)
        return {"count": deleted}

    async def delete(self, entity: EntityT) -> dict[str, int]:
        """Delete a stored entity."""
        return await self.delete_by_id(entity.get_id())

    # Relations

    async def _include(
        self, rows: list[dict[str, object]], include: object
    ) -> list[dict[str, object]]:
        """Resolve included relations with one independent lookup each."""
        if not include or not rows:
            return rows
        for name, scope in _parse_include(include):
            relation = self.descriptor.relations.get(name)
            if relation is None:
                raise ValueError(
                    f"{self.descriptor.type_name} has no relation {name!r}"
                )
            await self._attach(rows, name, relation, scope)
        return rows

    async def _attach(
        self,
        rows: list[dict[str, object]],
        name: str,
        relation: RelationSpec,
        scope: Mapping[str, object],
    ) -> None:
        registry = self.model_cache.registry
        target = registry.get(relation.target)
        handle = await self.model_cache.get_collection_handle(
            target, self.tenant_key
        )

        if relation.kind == "belongs_to":
            key_from = relation.key_from or name
            key_to = relation.key_to or target.id_field
        else:
            key_from = relation.key_from or self.descriptor.id_field
            key_to = relation.key_to
            if key_to is None:
                raise ValueError(f"Relation {name!r} needs a key_to field")

        keys = list({row[key_from] for row in rows if row.get(key_from) is not None})
        if not keys:
            related: list[dict[str, object]] = []
        else:
            where: dict[str, object] = {key_to: {"inq": keys}}
            if scope.get("where"):
                where = {"and": [where, scope["where"]]}
            related = await handle.find({**scope, "where": where})

        grouped: dict[object, list[dict[str, object]]] = {}
        for item in related:
            grouped.setdefault(item.get(key_to), []).append(item)

        for row in rows:
            matches = grouped.get(row.get(key_from), [])
            if relation.kind == "has_many":
                row[name] = matches
            else:
                row[name] = matches[0] if matches else None


def _parse_include(include: object) -> list[tuple[str, Mapping[str, object]]]:
    """Parse `"rel"`, `["rel", ...]` or `{"relation": "rel", "scope": {...}}`."""
    items = include if isinstance(include, list) else [include]
    parsed = []
    for item in items:
        if isinstance(item, str):
            parsed.append((item, {}))
        elif isinstance(item, Mapping) and "relation" in item:
            parsed.append((str(item["relation"]), item.get("scope") or {}))
        elif isinstance(item, Mapping):
            parsed.extend((str(name), scope or {}) for name, scope in item.items())
        else:
            raise ValueError(f"Invalid include: {item!r}")
    return parsed
