"""
High-level entry point for dsync.

SchemaSync wires one connection pool to the executor, inspector,
reconciler and exporter, and exposes the operations callers need.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .config import DSyncConfig
from .database.connection import ConnectionPool
from .database.executor import QueryExecutor, Sleep
from .database.introspection import ObservedColumn, SchemaInspector
from .export import DatabaseExporter
from .schema.ddl import DDLBuilder
from .schema.reconciler import ReconciliationResult, SchemaReconciler
from .schema.specs import TableSpec


class SchemaSync:
    """Pooled query execution and schema reconciliation for one MySQL database."""

    def __init__(
        self,
        config: DSyncConfig,
        pool: Optional[ConnectionPool] = None,
        sleep: Sleep = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.pool = pool or ConnectionPool(config.database)

        self.executor = QueryExecutor(
            self.pool,
            max_retries=config.retry.max_retries,
            retry_delay=config.retry.retry_delay,
            sleep=sleep,
            wait_interval=config.readiness.interval,
            logger=self.logger,
        )
        self.inspector = SchemaInspector(
            self.executor, config.database.database, logger=self.logger
        )
        self.reconciler = SchemaReconciler(
            self.executor,
            self.inspector,
            ddl=DDLBuilder(),
            dry_run=config.dry_run,
            logger=self.logger,
        )
        self.exporter = DatabaseExporter(
            config.database,
            command=config.export.command,
            extra_args=config.export.extra_args,
        )

    @classmethod
    def from_config(cls, config: DSyncConfig, **kwargs: Any) -> "SchemaSync":
        return cls(config, **kwargs)

    async def connect(self) -> None:
        await self.pool.initialize()

    async def close(self) -> None:
        await self.pool.close()

    async def __aenter__(self) -> "SchemaSync":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def wait_for_connection(self) -> None:
        """Block until the database accepts a connection."""
        await self.executor.wait_for_connection()

    async def query(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> List[Dict[str, Any]]:
        """Run a parameterized query with deadlock retry."""
        return await self.executor.execute(sql, params)

    async def table_exists(self, name: str) -> bool:
        return await self.inspector.table_exists(name)

    async def list_columns(self, name: str) -> List[ObservedColumn]:
        return await self.inspector.list_columns(name)

    async def check_and_create_table(self, spec: TableSpec) -> ReconciliationResult:
        """Create the table if missing, otherwise add any missing columns."""
        return await self.reconciler.reconcile_table(spec)

    async def sync(
        self, specs: Optional[Iterable[TableSpec]] = None
    ) -> Dict[str, ReconciliationResult]:
        """Reconcile the given specs, or every configured table."""
        if specs is None:
            specs = self.config.tables
        return await self.reconciler.reconcile_all(specs)

    async def export_database(self, out_file: Union[str, Path]) -> Path:
        return await self.exporter.export_database(out_file)
