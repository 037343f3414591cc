"""Shared fixtures: in-memory storage standing in for SurrealDB tables."""

import uuid
from collections.abc import Mapping

import pytest
import pytest_asyncio
from surrealdb import RecordID

from apps.activity.tracker import ActivityTracker
from apps.content.repositories import TenantRepositories
from apps.directory.models import Domain
from apps.directory.services import DomainDirectory
from apps.notifications.dispatch import NotificationDispatcher
from apps.notifications.schemas import Platform, PushMessage
from db.model_cache import ModelCache
from db.query_builder import _is_operator_object, _parse_fields, _parse_order

DIRECTORY_DATABASE = "directory"


def _get_path(row: Mapping[str, object], field: str) -> object:
    value: object = row
    for part in field.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


class InMemoryTable:
    """
    Table accessor with the `SurrealTable` interface backed by a dict.

    Where objects are evaluated in Python with the same operator set as the
    query builder. Rows are returned with a `RecordID` under `id`.
    """

    def __init__(
        self,
        records: dict[object, dict[str, object]],
        table: str,
        *,
        id_field: str = "id",
        coerce=None,  # noqa: ANN001
    ) -> None:
        self.records = records
        self.table = table
        self.id_field = id_field
        self._coerce = coerce
        self.definitions: list[str] = []

    def _value(self, field: str, value: object) -> object:
        if field in (self.id_field, "id"):
            return value.id if isinstance(value, RecordID) else value
        if self._coerce is None:
            return value
        if isinstance(value, list | tuple):
            return [self._coerce(field, v) for v in value]
        return self._coerce(field, value)

    def _row(self, key: object, content: Mapping[str, object]) -> dict[str, object]:
        return {"id": RecordID(self.table, key), **content}

    def _entity_view(self, key: object, content: Mapping[str, object]) -> dict[str, object]:
        return {**content, self.id_field: key, "id": key}

    def _check(self, actual: object, condition: object, field: str) -> bool:
        if condition is None:
            return actual is None
        if not _is_operator_object(condition):
            return actual == self._value(field, condition)

        for op, operand in condition.items():
            operand = self._value(field, operand)
            if op == "eq" and actual != operand:
                return False
            if op == "neq" and actual == operand:
                return False
            if op in ("gt", "gte", "lt", "lte"):
                if actual is None:
                    return False
                if op == "gt" and not actual > operand:
                    return False
                if op == "gte" and not actual >= operand:
                    return False
                if op == "lt" and not actual < operand:
                    return False
                if op == "lte" and not actual <= operand:
                    return False
            if op == "inq" and actual not in operand:
                return False
            if op == "nin" and actual in operand:
                return False
            if op == "between" and (
                actual is None or not operand[0] <= actual <= operand[1]
            ):
                return False
            if op == "exists" and (actual is not None) != bool(operand):
                return False
        return True

    def _matches(self, row: Mapping[str, object], where: Mapping[str, object] | None) -> bool:
        for key, condition in (where or {}).items():
            if key == "and":
                if not all(self._matches(row, w) for w in condition):
                    return False
            elif key == "or":
                if not any(self._matches(row, w) for w in condition):
                    return False
            elif not self._check(_get_path(row, key), condition, key):
                return False
        return True

    def _keys(self, where: Mapping[str, object] | None) -> list[object]:
        return [
            key
            for key, content in self.records.items()
            if self._matches(self._entity_view(key, content), where)
        ]

    async def define(self, statements: str) -> None:
        self.definitions.append(statements)

    async def insert(self, key: object | None, content: Mapping[str, object]) -> dict[str, object]:
        if key is None:
            key = uuid.uuid4().hex
        if key in self.records:
            raise RuntimeError(f"Database record `{self.table}:{key}` already exists")
        self.records[key] = dict(content)
        return self._row(key, self.records[key])

    async def select(self, filter: Mapping[str, object] | None = None) -> list[dict[str, object]]:  # noqa: A002
        filter = filter or {}
        keys = self._keys(filter.get("where"))
        for field, direction in reversed(_parse_order(filter.get("order"))):
            keys.sort(
                key=lambda k, f=field: (
                    _get_path(self._entity_view(k, self.records[k]), f) is None,
                    _get_path(self._entity_view(k, self.records[k]), f),
                ),
                reverse=direction.upper() == "DESC",
            )
        skip = filter.get("skip", filter.get("offset")) or 0
        keys = keys[skip:]
        if filter.get("limit") is not None:
            keys = keys[: filter["limit"]]
        fields = _parse_fields(filter.get("fields"))
        rows = []
        for key in keys:
            content = self.records[key]
            if fields:
                content = {f: content[f] for f in fields if f in content}
            rows.append(self._row(key, content))
        return rows

    async def select_record(self, key: object, fields: object = None) -> dict[str, object] | None:
        if key not in self.records:
            return None
        content = self.records[key]
        selected = _parse_fields(fields)
        if selected:
            content = {f: content[f] for f in selected if f in content}
        return self._row(key, content)

    async def merge(self, where: Mapping[str, object] | None, data: Mapping[str, object]) -> int:
        keys = self._keys(where)
        for key in keys:
            self.records[key].update(data)
        return len(keys)

    async def replace(self, key: object, content: Mapping[str, object]) -> dict[str, object] | None:
        if key not in self.records:
            return None
        self.records[key] = dict(content)
        return self._row(key, self.records[key])

    async def delete(self, where: Mapping[str, object] | None = None) -> int:
        keys = self._keys(where)
        for key in keys:
            del self.records[key]
        return len(keys)

    async def delete_record(self, key: object) -> int:
        return 1 if self.records.pop(key, None) is not None else 0

    async def count(self, where: Mapping[str, object] | None = None) -> int:
        return len(self._keys(where))


class FakeDatabaseManager:
    """Database manager serving `InMemoryTable`s, one store per (database, table)."""

    def __init__(self) -> None:
        self.stores: dict[tuple[str, str], dict[object, dict[str, object]]] = {}
        self.opened: list[tuple[str, str]] = []
        self.definitions: list[tuple[str, str, str]] = []
        self.fail_tables: set[str] = set()

    def records(self, database: str, table: str) -> dict[object, dict[str, object]]:
        return self.stores.setdefault((database, table), {})

    async def open_table(
        self,
        database: str,
        table: str,
        *,
        id_field: str = "id",
        coerce=None,  # noqa: ANN001
    ) -> InMemoryTable:
        if table in self.fail_tables:
            raise ConnectionError(f"Cannot open {database}.{table}")
        self.opened.append((database, table))
        accessor = InMemoryTable(
            self.records(database, table), table, id_field=id_field, coerce=coerce
        )
        manager = self

        async def define(statements: str) -> None:
            manager.definitions.append((database, table, statements))

        accessor.define = define
        return accessor


class RecordingSender:
    """Push sender keeping every message it is handed."""

    def __init__(self) -> None:
        self.sent: list[tuple[PushMessage, Platform]] = []

    async def send(self, message: PushMessage, platform: Platform) -> None:
        self.sent.append((message, platform))


@pytest.fixture
def db_manager() -> FakeDatabaseManager:
    """In-memory database manager."""
    return FakeDatabaseManager()


@pytest.fixture
def directory(db_manager: FakeDatabaseManager) -> DomainDirectory:
    """Domain directory on the in-memory directory database."""
    return DomainDirectory(db_manager, DIRECTORY_DATABASE)


@pytest_asyncio.fixture
async def tenants(directory: DomainDirectory) -> DomainDirectory:
    """Directory with `acme.com` and `beta.com` routed to their own databases."""
    await directory.save(Domain(hostname="acme.com", database="acme_db", active=True))
    await directory.save(Domain(hostname="beta.com", database="beta_db", active=True))
    return directory


@pytest.fixture
def model_cache(db_manager: FakeDatabaseManager, directory: DomainDirectory) -> ModelCache:
    """Model cache resolving tenants through the in-memory directory."""
    return ModelCache(db_manager, directory)


@pytest.fixture
def tracker() -> ActivityTracker:
    """Empty activity tracker."""
    return ActivityTracker()


@pytest.fixture
def sender() -> RecordingSender:
    """Push sender recording messages."""
    return RecordingSender()


@pytest.fixture
def dispatcher(tracker: ActivityTracker, sender: RecordingSender) -> NotificationDispatcher:
    """Dispatcher wired to the recording sender."""
    return NotificationDispatcher(tracker, sender)


@pytest.fixture
def acme(tenants: DomainDirectory, model_cache: ModelCache) -> TenantRepositories:
    """Content repositories of the `acme.com` tenant."""
    return TenantRepositories(model_cache, "acme.com")
