"""
Resilient query execution for dsync.

Every statement gets its own pooled connection, deadlocks are retried a
bounded number of times, and the connection is always handed back.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from pymysql.constants import ER
from pymysql.err import MySQLError

from .connection import ConnectionPool


DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 0.1  # seconds
DEFAULT_WAIT_INTERVAL = 1.0  # seconds

LOCK_CONFLICT_CODES = frozenset({ER.LOCK_DEADLOCK})

Sleep = Callable[[float], Awaitable[Any]]


def is_lock_conflict(exc: BaseException) -> bool:
    """Check if an error is a transient lock conflict reported by MySQL."""
    if not isinstance(exc, MySQLError) or not exc.args:
        return False
    return exc.args[0] in LOCK_CONFLICT_CODES


class QueryExecutor:
    """Executes parameterized statements against a connection pool."""

    def __init__(
        self,
        pool: ConnectionPool,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Sleep = asyncio.sleep,
        wait_interval: float = DEFAULT_WAIT_INTERVAL,
        logger: Optional[logging.Logger] = None,
    ):
        self.pool = pool
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.wait_interval = wait_interval
        self._sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    async def execute(
        self,
        query: str,
        params: Optional[Sequence[Any]] = None,
        retries: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Execute a statement and return its rows.

        Args:
            query: SQL text with ``%s`` placeholders
            params: Positional values bound to the placeholders
            retries: Deadlock retries left (defaults to ``max_retries``)

        Returns:
            Result rows as dicts; empty for statements without a result set.

        Lock conflicts are retried after ``retry_delay`` until the budget is
        spent, then the driver error is re-raised unchanged. Any other error
        is logged and re-raised immediately.
        """
        remaining = self.max_retries if retries is None else retries

        while True:
            try:
                return await self._execute_once(query, params)
            except Exception as e:
                if is_lock_conflict(e) and remaining > 0:
                    self.logger.warning(
                        f"Deadlock detected, retrying statement ({remaining} retries left)"
                    )
                    remaining -= 1
                    await self._sleep(self.retry_delay)
                    continue

                self.logger.error(f"SQL error executing query: {e}")
                self.logger.debug(f"Failed query: {query}")
                raise

    async def _execute_once(
        self, query: str, params: Optional[Sequence[Any]]
    ) -> List[Dict[str, Any]]:
        connection = await self.pool.acquire()
        try:
            return await connection.execute(query, params)
        finally:
            await self.pool.release(connection)

    async def wait_for_connection(self) -> None:
        """
        Block until one acquire/ping/release cycle succeeds.

        Meant for start-up sequencing; it never gives up on its own.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                connection = await self.pool.acquire()
                try:
                    await self.pool.ping(connection)
                finally:
                    await self.pool.release(connection)
                self.logger.info(f"Database is reachable (attempt {attempt})")
                return
            except Exception as e:
                self.logger.debug(
                    f"Database not ready (attempt {attempt}): {e}; "
                    f"retrying in {self.wait_interval}s"
                )
                await self._sleep(self.wait_interval)
