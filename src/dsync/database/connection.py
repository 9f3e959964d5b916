"""
Database connection management for dsync.

Wraps an aiomysql pool with the acquire/release/ping surface the query
executor relies on, plus pool sizing and waiting policy from configuration.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence
from urllib.parse import unquote, urlparse

import aiomysql
from pydantic import BaseModel, Field, model_validator

from .typecast import coerce_rows
from ..exceptions import (
    DatabaseConfigurationError,
    DatabaseConnectionError,
    PoolExhaustedError,
)


logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("host", "user", "database")


class ConnectionConfig(BaseModel):
    """Database connection configuration."""

    host: str = Field(..., description="Database host")
    port: int = Field(3306, description="Database port")
    user: str = Field(..., description="Database user")
    password: str = Field("", description="Database password")
    database: str = Field(..., description="Database name")

    # Connection pool settings
    wait_for_connections: bool = Field(
        True, description="Block until a connection frees up instead of failing"
    )
    connection_limit: int = Field(10, ge=1, description="Maximum connections in pool")
    queue_limit: int = Field(
        0, ge=0, description="Maximum callers waiting for a connection (0 = unbounded)"
    )
    connect_timeout: float = Field(10.0, description="Connect timeout in seconds")

    @model_validator(mode="before")
    @classmethod
    def check_required(cls, data: Any) -> Any:
        if isinstance(data, dict):
            for name in REQUIRED_FIELDS:
                value = data.get(name)
                if value is None or not str(value).strip():
                    raise DatabaseConfigurationError(f"Database {name} is required")
        return data

    @classmethod
    def from_url(cls, url: str, **overrides: Any) -> "ConnectionConfig":
        """Create configuration from a mysql:// URL."""
        parsed = urlparse(url)

        if parsed.scheme not in ("mysql", "mysql+aiomysql"):
            raise DatabaseConfigurationError(f"Invalid database URL scheme: {parsed.scheme}")

        if not parsed.path or parsed.path == "/":
            raise DatabaseConfigurationError("Database database is required")

        config_data: Dict[str, Any] = {
            "host": parsed.hostname or "",
            "port": parsed.port or 3306,
            "database": parsed.path.lstrip("/"),
            "user": unquote(parsed.username or ""),
            "password": unquote(parsed.password or ""),
        }
        config_data.update(overrides)
        return cls(**config_data)

    def to_connection_kwargs(self) -> Dict[str, Any]:
        """Convert to aiomysql connection kwargs."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "db": self.database,
            "connect_timeout": self.connect_timeout,
            "autocommit": True,
        }


class PooledConnection:
    """A single pooled connection, valid until released."""

    def __init__(self, conn: aiomysql.Connection):
        self._conn = conn

    @property
    def raw(self) -> aiomysql.Connection:
        return self._conn

    async def execute(
        self, query: str, params: Optional[Sequence[Any]] = None
    ) -> List[Dict[str, Any]]:
        """Execute a statement with positional parameters and return its rows."""
        async with self._conn.cursor(aiomysql.DictCursor) as cursor:
            await cursor.execute(query, params)
            if not cursor.description:
                return []
            rows = await cursor.fetchall()
            return coerce_rows(rows, cursor.description)

    async def ping(self) -> None:
        await self._conn.ping(reconnect=False)


class ConnectionPool:
    """Bounded aiomysql connection pool wrapper."""

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self._pool: Optional[aiomysql.Pool] = None
        self._lock = asyncio.Lock()
        self._available = asyncio.Condition()
        self._in_use = 0
        self._waiting = 0

    async def connect(self) -> None:
        """Connect to database and initialize pool. Alias for initialize()."""
        await self.initialize()

    async def initialize(self) -> None:
        """Initialize the connection pool."""
        async with self._lock:
            if self._pool is not None:
                return

            try:
                logger.info(
                    f"Initializing connection pool to {self.config.host}:{self.config.port}"
                    f"/{self.config.database} (limit={self.config.connection_limit})"
                )

                self._pool = await aiomysql.create_pool(
                    **self.config.to_connection_kwargs(),
                    minsize=0,
                    maxsize=self.config.connection_limit,
                )

                logger.info("Connection pool initialized successfully")

            except Exception as e:
                logger.error(f"Failed to initialize connection pool: {e}")
                raise DatabaseConnectionError(
                    f"Failed to initialize connection pool: {e}", cause=e
                ) from e

    async def close(self) -> None:
        """Close the connection pool."""
        async with self._lock:
            if self._pool is not None:
                logger.info("Closing connection pool")
                self._pool.close()
                await self._pool.wait_closed()
                self._pool = None

    async def acquire(self) -> PooledConnection:
        """
        Take a connection from the pool.

        When ``connection_limit`` connections are checked out the caller
        waits for one to be released, unless ``wait_for_connections`` is off
        or ``queue_limit`` callers are already waiting, in which case
        PoolExhaustedError is raised. The limit check and the slot
        reservation happen under one lock.
        """
        if self._pool is None:
            raise DatabaseConnectionError("Pool is not connected")

        limit = self.config.connection_limit
        async with self._available:
            if self._in_use >= limit:
                if not self.config.wait_for_connections:
                    raise PoolExhaustedError(limit)
                if self.config.queue_limit and self._waiting >= self.config.queue_limit:
                    raise PoolExhaustedError(limit, self._waiting, self.config.queue_limit)

                self._waiting += 1
                try:
                    logger.debug(
                        f"Pool exhausted, waiting for a free connection ({self._waiting} waiting)"
                    )
                    await self._available.wait_for(lambda: self._in_use < limit)
                finally:
                    self._waiting -= 1
            self._in_use += 1

        try:
            return PooledConnection(await self._pool.acquire())
        except BaseException:
            await self._free_slot()
            raise

    async def release(self, connection: PooledConnection) -> None:
        """Return a connection to the pool."""
        try:
            if self._pool is None:
                connection.raw.close()
            else:
                self._pool.release(connection.raw)
        finally:
            await self._free_slot()

    async def _free_slot(self) -> None:
        async with self._available:
            self._in_use -= 1
            self._available.notify()

    async def ping(self, connection: PooledConnection) -> None:
        await connection.ping()

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[PooledConnection]:
        """Acquire a connection for the duration of the block."""
        conn = await self.acquire()
        try:
            yield conn
        finally:
            await self.release(conn)

    def get_stats(self) -> Dict[str, Any]:
        """Get connection pool statistics."""
        if self._pool is None:
            return {
                "size": 0,
                "free": 0,
                "acquired": 0,
                "waiting": 0,
                "initialized": False,
            }

        return {
            "size": self._pool.size,
            "free": self._pool.freesize,
            "acquired": self._in_use,
            "waiting": self._waiting,
            "initialized": True,
        }

    @property
    def is_initialized(self) -> bool:
        """Check if pool is initialized."""
        return self._pool is not None

    @property
    def is_closed(self) -> bool:
        """Check if pool is closed."""
        if self._pool is None:
            return True
        return bool(getattr(self._pool, "_closed", False))
