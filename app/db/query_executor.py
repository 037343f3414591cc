"""Safe query executor for SurrealDB with parameterized queries."""

import logging
import re
import time

from .exceptions import QueryFailedError
from .manager import AsyncSurrealConnection

logger = logging.getLogger(__name__)

SLOW_QUERY_SECONDS = 1.0

# "Found .. for field `f`, .. but expected a X" and
# "Couldn't coerce value for field `f` of `t:k`: Expected `X` but found .."
_SCHEMA_VIOLATION = re.compile(r"for field `[^`]+`.*expected", re.IGNORECASE | re.DOTALL)


async def execute_query(
    db: AsyncSurrealConnection,
    query: str,
    variables: dict[str, object] | None = None,
) -> list[dict[str, object]]:
    """
    Execute a parameterized SurrealDB query safely with performance monitoring.

    Args:
        db: Connection bound to the target database
        query: SurrealQL query with $param placeholders
        variables: Dictionary of parameters to bind

    Returns:
        List of result rows

    Examples:
        ```python
        rows = await execute_query(
            db,
            "SELECT * FROM AppData WHERE type = $param_0",
            {"param_0": "post"},
        )
        ```

    """
    start_time = time.perf_counter()
    query_type = _detect_query_type(query)

    try:
        if variables:
            result = await db.query(query, variables)
        else:
            result = await db.query(query)
    except Exception:
        execution_time = time.perf_counter() - start_time
        logger.exception(
            "Query execution failed: type=%s, time=%.3fs, query=%s",
            query_type,
            execution_time,
            query[:200],
        )
        raise

    rows = _unwrap_result(result)
    execution_time = time.perf_counter() - start_time
    logger.debug(
        "Query executed: type=%s, time=%.3fs, rows=%d, query_length=%d",
        query_type,
        execution_time,
        len(rows),
        len(query),
    )
    if execution_time > SLOW_QUERY_SECONDS:
        logger.warning(
            "Slow query detected: type=%s, time=%.3fs, rows=%d, query=%s",
            query_type,
            execution_time,
            len(rows),
            query[:200],
        )
    return rows


def _unwrap_result(result: object) -> list[dict[str, object]]:
    """
    Normalise the SDK response into a list of rows.

    Older SDKs return `[{"status": ..., "result": rows}]` per statement,
    current ones return the rows of the first statement directly.
    """
    if not result:
        return []
    if isinstance(result, str):
        # Current SDKs hand back the error message of a failed statement
        raise QueryFailedError(result)
    if isinstance(result, dict):
        return [result]
    if isinstance(result, list):
        first = result[0]
        if isinstance(first, dict) and "result" in first and "status" in first:
            if first["status"] != "OK":
                raise QueryFailedError(str(first["result"]))
            rows = first["result"]
            if rows is None:
                return []
            return rows if isinstance(rows, list) else [rows]
        return result
    raise TypeError(f"Unexpected SurrealDB result type: {type(result).__name__}")


def is_schema_violation(error: Exception) -> bool:
    """Check whether a failure is a field type violation of the table schema."""
    detail = getattr(error, "detail", None) or str(error)
    return bool(_SCHEMA_VIOLATION.search(detail))


def _detect_query_type(query: str) -> str:
    """
    Detect query type from query string.

    Args:
        query: SurrealQL query string

    Returns:
        Query type identifier

    """
    statement = query.lstrip().split(" ", 1)[0].upper()
    if statement == "SELECT" and "COUNT()" in query.upper():
        return "count"
    return {
        "SELECT": "select",
        "CREATE": "create",
        "UPDATE": "update",
        "DELETE": "delete",
        "DEFINE": "define",
    }.get(statement, "other")
