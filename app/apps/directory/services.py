"""Domain directory: hostname to database routing, stored on the directory database."""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime

from db.exceptions import EntityNotFoundError
from db.model_cache import CollectionHandle, TableOpener, open_collection
from db.models import DescriptorRegistry, EntityDescriptor, entity_registry
from db.repository import MultiTenantRepository

from .models import Domain

logger = logging.getLogger(__name__)


class DomainDirectory:
    """
    Directory of tenant domains.

    Unlike tenant content, directory entries live in one fixed database, so
    the collection is bound once and reused for the process lifetime.
    """

    def __init__(self, db_manager: TableOpener, database: str) -> None:
        """
        Initialize the directory.

        Args:
            db_manager: Opens table accessors on databases
            database: Name of the directory database

        """
        self._db_manager = db_manager
        self.database = database
        self._handle: CollectionHandle | None = None
        self.repository = MultiTenantRepository(Domain, self, database)

    @property
    def registry(self) -> DescriptorRegistry:
        return entity_registry

    async def get_collection_handle(
        self, descriptor: EntityDescriptor, tenant_key: str
    ) -> CollectionHandle:
        """Return the directory collection, binding it on first use."""
        if self._handle is None:
            self._handle = await open_collection(
                self._db_manager, descriptor, self.database
            )
        return self._handle

    async def init_schema(self) -> None:
        """Define the directory table and its indexes."""
        await self.get_collection_handle(Domain.descriptor, self.database)
        logger.info("Domain directory ready on database %s", self.database)

    async def find_by_id(self, hostname: str) -> Domain | None:
        """Return the entry of a hostname, or None when it is not registered."""
        try:
            return await self.repository.find_by_id(hostname)
        except EntityNotFoundError:
            return None

    async def get(self, hostname: str) -> Domain:
        """Return the entry of a hostname, raising `EntityNotFoundError`."""
        return await self.repository.find_by_id(hostname)

    async def find(self, filter: Mapping[str, object] | None = None) -> list[Domain]:  # noqa: A002
        return await self.repository.find(filter)

    async def count(self, where: Mapping[str, object] | None = None) -> dict[str, int]:
        return await self.repository.count(where)

    async def save(self, domain: Domain) -> Domain:
        """Create or replace an entry, stamping its timestamps."""
        now = datetime.now(UTC)
        if domain.createdAt is None:
            domain.createdAt = now
        domain.updatedAt = now
        saved = await self.repository.save(domain)
        logger.info("Saved domain %s -> %s", saved.hostname, saved.database)
        return saved

    async def update_by_id(self, hostname: str, data: Mapping[str, object]) -> None:
        """Partially update an entry, stamping `updatedAt`."""
        changes = dict(data)
        if changes:
            changes["updatedAt"] = datetime.now(UTC)
        await self.repository.update_by_id(hostname, changes)

    async def update_all(
        self, data: Mapping[str, object], where: Mapping[str, object] | None = None
    ) -> dict[str, int]:
        changes = dict(data)
        if changes:
            changes["updatedAt"] = datetime.now(UTC)
        return await self.repository.update_all(changes, where)

    async def delete_by_id(self, hostname: str) -> None:
        await self.repository.delete_by_id(hostname)
        logger.info("Deleted domain %s", hostname)
