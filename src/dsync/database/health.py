"""
Database health checking for dsync.

Connectivity and pool checks shown by ``dsync status``.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Tuple

from .connection import ConnectionPool


logger = logging.getLogger(__name__)

CheckOutcome = Tuple["HealthStatus", str, Dict[str, Any]]


class HealthStatus(str, Enum):
    """Health check status levels."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass
class HealthCheckResult:
    """Outcome of one named check."""

    name: str
    status: HealthStatus
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0.0

    @property
    def is_healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY


class DatabaseHealthChecker:
    """Runs the status checks against one ConnectionPool."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    async def check_all(self) -> Dict[str, HealthCheckResult]:
        """Run every check concurrently, keyed by check name."""
        results = await asyncio.gather(
            self.check_connectivity(),
            self.check_connection_pool(),
        )
        return {result.name: result for result in results}

    async def check_connectivity(self) -> HealthCheckResult:
        """Round-trip a query identifying the server, database and user."""
        return await self._timed("connectivity", self._connectivity)

    async def check_connection_pool(self) -> HealthCheckResult:
        """Report pool usage against its configured limits."""
        return await self._timed("connection_pool", self._pool_usage)

    async def _connectivity(self) -> CheckOutcome:
        async with self.pool.connection() as conn:
            rows = await conn.execute(
                "SELECT VERSION() AS version, DATABASE() AS current_database, "
                "CURRENT_USER() AS current_user"
            )
        row = rows[0]
        details = {
            "database": row["current_database"],
            "user": row["current_user"],
            "version": row["version"],
        }
        return HealthStatus.HEALTHY, "Database connection successful", details

    async def _pool_usage(self) -> CheckOutcome:
        config = self.pool.config
        stats = self.pool.get_stats()
        details = {
            **stats,
            "connection_limit": config.connection_limit,
            "queue_limit": config.queue_limit,
        }

        if not self.pool.is_initialized:
            return HealthStatus.CRITICAL, "Connection pool is not initialized", details
        if stats["acquired"] >= config.connection_limit:
            return HealthStatus.WARNING, "Connection pool is exhausted", details
        return HealthStatus.HEALTHY, "Connection pool is healthy", details

    async def _timed(
        self, name: str, check: Callable[[], Awaitable[CheckOutcome]]
    ) -> HealthCheckResult:
        start_time = time.perf_counter()
        try:
            status, message, details = await check()
        except Exception as e:
            logger.error(f"Health check {name} failed: {e}")
            status = HealthStatus.CRITICAL
            message = f"{name} check failed: {e}"
            details = {"error": str(e)}
        duration_ms = (time.perf_counter() - start_time) * 1000
        return HealthCheckResult(name, status, message, details, duration_ms)
