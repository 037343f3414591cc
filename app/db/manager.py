"""SurrealDB connection module."""

import asyncio
import logging
from typing import TYPE_CHECKING

import surrealdb
from singleton import Singleton

if TYPE_CHECKING:
    from .query_builder import Coercer
    from .table import SurrealTable

AsyncSurrealConnection = (
    surrealdb.AsyncEmbeddedSurrealConnection
    | surrealdb.AsyncWsSurrealConnection
    | surrealdb.AsyncHttpSurrealConnection
)
logger = logging.getLogger(__name__)


class DatabaseManager(metaclass=Singleton):
    """
    Manages SurrealDB connections, one per database of the namespace.

    The directory database is connected at startup; tenant databases are
    connected lazily on first use and kept for the process lifetime.
    """

    def __init__(
        self,
        surrealdb_uri: str,
        surrealdb_username: str,
        surrealdb_password: str,
        surrealdb_namespace: str,
        surrealdb_database: str,
    ) -> None:
        """
        Initialize the database manager.

        Args:
            surrealdb_uri: SurrealDB connection URI
            surrealdb_username: SurrealDB username for authentication
            surrealdb_password: SurrealDB password for authentication
            surrealdb_namespace: SurrealDB namespace shared by all tenants
            surrealdb_database: Directory database name

        """
        self.surrealdb_uri = surrealdb_uri
        self.surrealdb_username = surrealdb_username
        self.surrealdb_password = surrealdb_password
        self.surrealdb_namespace = surrealdb_namespace
        self.surrealdb_database = surrealdb_database
        self._connections: dict[str, AsyncSurrealConnection] = {}
        self._lock = asyncio.Lock()

    async def _open(self, database: str) -> AsyncSurrealConnection:
        """Open and authenticate a connection bound to one database."""
        connection = surrealdb.AsyncSurreal(self.surrealdb_uri)
        await connection.connect()
        await connection.signin({
            "username": self.surrealdb_username,
            "password": self.surrealdb_password,
        })
        await connection.use(self.surrealdb_namespace, database)
        logger.info(
            "Connected to SurrealDB %s/%s", self.surrealdb_namespace, database
        )
        return connection

    async def aconnect(self) -> None:
        """Initialize the directory database connection."""
        await self.get_db()

    async def get_db(self, database: str | None = None) -> AsyncSurrealConnection:
        """
        Get the connection for a database, connecting on first use.

        Args:
            database: Database name (defaults to the directory database)

        Returns:
            Connection bound to the database

        """
        database = database or self.surrealdb_database
        connection = self._connections.get(database)
        if connection is not None:
            return connection

        async with self._lock:
            connection = self._connections.get(database)
            if connection is None:
                connection = await self._open(database)
                self._connections[database] = connection
        return connection

    async def open_table(
        self,
        database: str,
        table: str,
        *,
        id_field: str = "id",
        coerce: "Coercer | None" = None,
    ) -> "SurrealTable":
        """
        Bind a table of a database to a storage accessor.

        Args:
            database: Database name
            table: Table name inside the database
            id_field: Entity field stored as the record key
            coerce: Converts filter values into their stored representation

        Returns:
            Table accessor executing queries on the database connection

        """
        from .table import SurrealTable

        connection = await self.get_db(database)
        return SurrealTable(connection, table, id_field=id_field, coerce=coerce)

    async def adisconnect(self) -> None:
        """Close all database connections."""
        connections, self._connections = self._connections, {}
        for database, connection in connections.items():
            try:
                await connection.close()
            except Exception:
                logger.exception("Failed to close connection to %s", database)
