"""Storage accessor executing CRUD statements against one SurrealDB table."""

import logging
from collections.abc import Mapping

from surrealdb import RecordID

from .manager import AsyncSurrealConnection
from .exceptions import ValidationError
from .query_builder import Coercer, QueryBuilder
from .query_executor import execute_query, is_schema_violation

logger = logging.getLogger(__name__)

Row = dict[str, object]


class SurrealTable:
    """
    CRUD accessor for a table of one database.

    The entity id field is stored as the record key (`table:key`), so
    filters on it are rewritten to the record `id`.
    """

    def __init__(
        self,
        connection: AsyncSurrealConnection,
        table: str,
        *,
        id_field: str = "id",
        coerce: Coercer | None = None,
    ) -> None:
        """
        Initialize the accessor.

        Args:
            connection: Connection bound to the target database
            table: Table name
            id_field: Entity field stored as the record key
            coerce: Converts filter values into their stored representation

        """
        self.connection = connection
        self.table = table
        self.id_field = id_field
        self._coerce = coerce

    def record_id(self, key: object) -> RecordID:
        """Return the record id of a key in this table."""
        if isinstance(key, RecordID):
            return key
        return RecordID(self.table, key)

    def _coerce_value(self, field: str, value: object) -> object:
        if field in (self.id_field, "id"):
            return self.record_id(value)
        if self._coerce is None:
            return value
        return self._coerce(field, value)

    def _builder(self) -> QueryBuilder:
        aliases = {self.id_field: "id"} if self.id_field != "id" else None
        return QueryBuilder(
            self.table, field_aliases=aliases, coerce=self._coerce_value
        )

    async def _execute(
        self, query: str, params: dict[str, object] | None = None
    ) -> list[Row]:
        """Run a statement; field type violations become `ValidationError`."""
        try:
            return await execute_query(self.connection, query, params)
        except Exception as exc:
            if not is_schema_violation(exc):
                raise
            detail = getattr(exc, "detail", None) or str(exc)
            logger.info("Schema violation on %s: %s", self.table, detail)
            raise ValidationError(self.table, [detail]) from exc

    async def define(self, statements: str) -> None:
        """Execute schema definition statements."""
        await self._execute(statements)

    async def insert(self, key: object | None, content: Mapping[str, object]) -> Row:
        """Create a record, letting the database generate the key when None."""
        builder = self._builder()
        if key is not None:
            builder.from_record(self.record_id(key))
        query, params = builder.build_create(content)
        rows = await self._execute(query, params)
        return rows[0] if rows else {}

    async def select(self, filter: Mapping[str, object] | None = None) -> list[Row]:  # noqa: A002
        """Select the records matching a repository filter."""
        query, params = self._builder().apply_filter(filter).build()
        return await self._execute(query, params)

    async def select_record(
        self, key: object, fields: object = None
    ) -> Row | None:
        """Select one record by key, optionally projecting fields."""
        builder = self._builder().from_record(self.record_id(key))
        builder.apply_filter({"fields": fields})
        query, params = builder.build()
        rows = await self._execute(query, params)
        return rows[0] if rows else None

    async def merge(
        self, where: Mapping[str, object] | None, data: Mapping[str, object]
    ) -> int:
        """Merge data into every matching record, returning how many changed."""
        query, params = self._builder().where_filter(where).build_merge(data)
        rows = await self._execute(query, params)
        return len(rows)

    async def replace(self, key: object, content: Mapping[str, object]) -> Row | None:
        """Replace an existing record, returning None when it does not exist."""
        builder = self._builder().from_record(self.record_id(key))
        query, params = builder.build_replace(content)
        rows = await self._execute(query, params)
        return rows[0] if rows else None

    async def delete(self, where: Mapping[str, object] | None = None) -> int:
        """Delete every matching record, returning how many were deleted."""
        query, params = self._builder().where_filter(where).build_delete()
        rows = await self._execute(query, params)
        return len(rows)

    async def delete_record(self, key: object) -> int:
        """Delete one record by key, returning 1 if it existed, else 0."""
        builder = self._builder().from_record(self.record_id(key))
        query, params = builder.build_delete()
        rows = await self._execute(query, params)
        return len([row for row in rows if row])

    async def count(self, where: Mapping[str, object] | None = None) -> int:
        """Count the matching records."""
        query, params = self._builder().where_filter(where).build_count()
        rows = await self._execute(query, params)
        if not rows:
            return 0
        return int(rows[0].get("count", 0))
