"""Query builder compiling repository filters into safe SurrealDB queries."""

import logging
import re
from collections.abc import Callable, Mapping
from typing import Self

from .field_validation import sanitize_field_name, validate_field_name
from .metadata import _get_table_names

logger = logging.getLogger(__name__)

# Repository filter operators and their SurrealQL counterparts
OPERATORS: dict[str, str] = {
    "eq": "=",
    "neq": "!=",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
    "inq": "IN",
    "nin": "NOT IN",
}
SPECIAL_OPERATORS = frozenset({"between", "exists"})
ALLOWED_OPERATORS = frozenset({"=", "!=", ">", "<", ">=", "<=", "IN", "NOT IN"})

Coercer = Callable[[str, object], object]


class QueryBuilder:
    """ORM-like query builder for safe SurrealDB queries."""

    def __init__(
        self,
        table: str,
        *,
        field_aliases: Mapping[str, str] | None = None,
        coerce: Coercer | None = None,
    ) -> None:
        """
        Initialize query builder.

        Args:
            table: Table name
            field_aliases: Entity field names stored under another name
                (the id field is stored as the record `id`)
            coerce: Converts a filter value for a given field into its
                stored representation

        """
        self._validate_table(table)
        self.table = table
        self._field_aliases = dict(field_aliases or {})
        self._coerce = coerce
        self._target: str | None = None
        self._where_parts: list[str] = []
        self._params: dict[str, object] = {}
        self._param_counter = 0
        self._select_fields: list[str] = ["*"]
        self._order_by: list[str] = []
        self._limit_value: int | None = None
        self._skip_value: int | None = None

    @staticmethod
    def _validate_table(table: str) -> None:
        """Validate table name is safe (dynamic validation)."""
        if not re.match(r"^[a-zA-Z0-9_-]+$", table):
            raise ValueError(f"Invalid table name format: {table}")

        allowed_tables = _get_table_names()
        if table not in allowed_tables:
            logger.debug(
                "Table '%s' not found in registered entities. Allowed: %s",
                table,
                sorted(allowed_tables),
            )

    def _add_param(self, value: object) -> str:
        """
        Add a parameter and return its placeholder name.

        Args:
            value: Parameter value

        Returns:
            Parameter placeholder name (e.g., "$param_0")

        """
        param_name = f"param_{self._param_counter}"
        self._params[param_name] = value
        self._param_counter += 1
        return f"${param_name}"

    def _field(self, field: str) -> str:
        """Validate a field name and map it to its stored name."""
        if not validate_field_name(field):
            raise ValueError(f"Unsafe field name: {field}")
        return sanitize_field_name(self._field_aliases.get(field, field))

    def _value(self, field: str, value: object) -> object:
        """Convert a filter value to its stored representation."""
        if self._coerce is None:
            return value
        return self._coerce(field, value)

    def _condition(self, field: str, value: object, operator: str = "=") -> str:
        """Build a single parameterised condition."""
        sanitized_field = self._field(field)

        operator = operator.upper()
        if operator not in ALLOWED_OPERATORS:
            raise ValueError(f"Unsafe operator: {operator}")

        if operator in ("IN", "NOT IN"):
            if not isinstance(value, list | tuple):
                raise ValueError(f"{operator} operator requires a list value")
            param_placeholders = [
                self._add_param(self._value(field, v)) for v in value
            ]
            in_list = "[" + ", ".join(param_placeholders) + "]"
            return " ".join([sanitized_field, operator, in_list])

        param_placeholder = self._add_param(self._value(field, value))
        return " ".join([sanitized_field, operator, param_placeholder])

    def where_filter(self, where: Mapping[str, object] | None) -> Self:
        """
        Add a repository `where` object as a single condition.

        Supports plain equality (`{"type": "post"}`), operator objects
        (`{"createdAt": {"gt": ts}}`, `{"type": {"inq": [...]}}`),
        `between`, `exists` and nested `and` / `or` groups.

        Args:
            where: Repository where object

        Returns:
            Self for method chaining

        """
        clause = self._compile_where(where)
        if clause:
            self._where_parts.append(clause)
        return self

    def _compile_where(self, where: Mapping[str, object] | None) -> str | None:
        """Compile a where object into a SurrealQL boolean expression."""
        if not where:
            return None
        if not isinstance(where, Mapping):
            raise ValueError(f"Invalid where clause: {where!r}")

        parts: list[str] = []
        for key, value in where.items():
            if key in ("and", "or"):
                if not isinstance(value, list):
                    raise ValueError(f"'{key}' requires a list of where objects")
                compiled = [c for c in map(self._compile_where, value) if c]
                if compiled:
                    parts.append(
                        "(" + f" {key.upper()} ".join(compiled) + ")"
                    )
            else:
                parts.extend(self._compile_field(key, value))

        if not parts:
            return None
        return parts[0] if len(parts) == 1 else "(" + " AND ".join(parts) + ")"

    def _compile_field(self, field: str, value: object) -> list[str]:
        """Compile the conditions placed on one field."""
        if value is None:
            return [f"{self._field(field)} IS NONE"]

        if not _is_operator_object(value):
            return [self._condition(field, value)]

        conditions = []
        for op, operand in value.items():
            if op == "between":
                if not isinstance(operand, list | tuple) or len(operand) != 2:
                    raise ValueError("between operator requires two values")
                conditions.append(self._condition(field, operand[0], ">="))
                conditions.append(self._condition(field, operand[1], "<="))
            elif op == "exists":
                suffix = "IS NOT NONE" if operand else "IS NONE"
                conditions.append(f"{self._field(field)} {suffix}")
            elif op in ("eq", "neq") and operand is None:
                suffix = "IS NONE" if op == "eq" else "IS NOT NONE"
                conditions.append(f"{self._field(field)} {suffix}")
            else:
                conditions.append(self._condition(field, operand, OPERATORS[op]))
        return conditions

    def from_record(self, record_id: object) -> Self:
        """
        Target a single record instead of the whole table.

        Args:
            record_id: SurrealDB record id

        Returns:
            Self for method chaining

        """
        self._target = self._add_param(record_id)
        return self

    def select(self, *fields: str) -> Self:
        """
        Specify fields to select.

        Args:
            *fields: Field names to select

        Returns:
            Self for method chaining

        """
        validated_fields = [self._field(field) for field in fields]
        if validated_fields and "id" not in validated_fields:
            validated_fields.insert(0, "id")
        self._select_fields = validated_fields if validated_fields else ["*"]
        return self

    def order_by(self, field: str, direction: str = "ASC") -> Self:
        """
        Add ORDER BY clause.

        Args:
            field: Field name to order by
            direction: ASC or DESC

        Returns:
            Self for method chaining

        """
        if direction.upper() not in {"ASC", "DESC"}:
            raise ValueError(f"Invalid direction: {direction}")

        self._order_by.append(f"{self._field(field)} {direction.upper()}")
        return self

    def limit(self, count: int) -> Self:
        """
        Add LIMIT clause.

        Args:
            count: Maximum number of results

        Returns:
            Self for method chaining

        """
        if not isinstance(count, int) or count < 0:
            raise ValueError("Limit must be a non-negative integer")
        self._limit_value = count
        return self

    def skip(self, count: int) -> Self:
        """
        Add SKIP clause.

        Args:
            count: Number of records to skip

        Returns:
            Self for method chaining

        """
        if not isinstance(count, int) or count < 0:
            raise ValueError("Skip must be a non-negative integer")
        self._skip_value = count
        return self

    def apply_filter(self, filter: Mapping[str, object] | None) -> Self:  # noqa: A002
        """
        Apply a repository filter (`where`, `order`, `limit`, `skip`, `fields`).

        Args:
            filter: Repository filter object

        Returns:
            Self for method chaining

        """
        if not filter:
            return self

        self.where_filter(filter.get("where"))

        for field, direction in _parse_order(filter.get("order")):
            self.order_by(field, direction)

        if filter.get("limit") is not None:
            self.limit(filter["limit"])

        skip = filter.get("skip", filter.get("offset"))
        if skip is not None:
            self.skip(skip)

        fields = _parse_fields(filter.get("fields"))
        if fields:
            self.select(*fields)

        return self

    def _from_clause(self) -> str:
        return self._target or self.table

    def _where_clause(self) -> str:
        if not self._where_parts:
            return ""
        return "WHERE " + " AND ".join(self._where_parts)

    def build(self) -> tuple[str, dict[str, object]]:
        """
        Build the final SELECT query string and parameters.

        Returns:
            Tuple of (query string, parameters dict)

        """
        query_parts = [
            "SELECT",
            ", ".join(self._select_fields),
            "FROM",
            self._from_clause(),
        ]
        if self._where_parts:
            query_parts.append(self._where_clause())
        if self._order_by:
            query_parts.append("ORDER BY " + ", ".join(self._order_by))
        if self._limit_value is not None:
            query_parts.append(f"LIMIT {self._limit_value}")
        if self._skip_value is not None:
            query_parts.append(f"START {self._skip_value}")

        return " ".join(query_parts), self._params

    def build_count(self) -> tuple[str, dict[str, object]]:
        """Build a `count()` query grouping all matching records."""
        query_parts = ["SELECT count() AS count FROM", self._from_clause()]
        if self._where_parts:
            query_parts.append(self._where_clause())
        query_parts.append("GROUP ALL")
        return " ".join(query_parts), self._params

    def build_create(self, content: Mapping[str, object]) -> tuple[str, dict[str, object]]:
        """Build a CREATE statement for the table or the targeted record."""
        content_param = self._add_param(dict(content))
        query = " ".join(["CREATE", self._from_clause(), "CONTENT", content_param])
        return query, self._params

    def build_merge(self, data: Mapping[str, object]) -> tuple[str, dict[str, object]]:
        """Build an UPDATE ... MERGE statement returning the ids it touched."""
        data_param = self._add_param(dict(data))
        query_parts = ["UPDATE", self._from_clause(), "MERGE", data_param]
        if self._where_parts:
            query_parts.append(self._where_clause())
        query_parts.append("RETURN id")
        return " ".join(query_parts), self._params

    def build_replace(
        self, content: Mapping[str, object]
    ) -> tuple[str, dict[str, object]]:
        """Build an UPDATE ... CONTENT statement for the targeted record."""
        if self._target is None:
            raise ValueError("Replace requires a target record")
        content_param = self._add_param(dict(content))
        query = " ".join(["UPDATE", self._target, "CONTENT", content_param])
        return query, self._params

    def build_delete(self) -> tuple[str, dict[str, object]]:
        """Build a DELETE statement returning the deleted records."""
        query_parts = ["DELETE", self._from_clause()]
        if self._where_parts:
            query_parts.append(self._where_clause())
        query_parts.append("RETURN BEFORE")
        return " ".join(query_parts), self._params


def _is_operator_object(value: object) -> bool:
    """Check whether a where value is an operator object like `{"gt": 1}`."""
    if not isinstance(value, Mapping) or not value:
        return False
    keys = set(value)
    known = set(OPERATORS) | SPECIAL_OPERATORS
    if keys <= known:
        return True
    if keys & known:
        raise ValueError(f"Unsafe operator: {sorted(keys - known)}")
    return False


def _parse_order(order: object) -> list[tuple[str, str]]:
    """Parse `"field DESC"` or a list of such strings."""
    if not order:
        return []
    items = [order] if isinstance(order, str) else list(order)
    parsed = []
    for item in items:
        parts = str(item).split()
        if not parts or len(parts) > 2:
            raise ValueError(f"Invalid order: {item}")
        parsed.append((parts[0], parts[1] if len(parts) == 2 else "ASC"))
    return parsed


def _parse_fields(fields: object) -> list[str]:
    """Parse `["a", "b"]` or `{"a": true, "b": false}` into selected fields."""
    if not fields:
        return []
    if isinstance(fields, Mapping):
        return [name for name, included in fields.items() if included]
    return list(fields)

