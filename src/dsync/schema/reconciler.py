"""
Schema reconciliation core logic for dsync.

Brings each declared table in line with its spec: missing tables are
created (then keyed and given their auto-increment column), existing tables
get any declared columns they lack. Failures are contained per table.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..database.executor import QueryExecutor
from ..database.introspection import SchemaInspector
from .ddl import DDLBuilder
from .specs import ColumnSpec, TableSpec


class ReconciliationStatus(str, Enum):
    """Status of reconciliation operations."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class ReconciliationAction(str, Enum):
    """What reconciliation did to a table."""

    CREATED = "created"
    ALTERED = "altered"
    UNCHANGED = "unchanged"
    NONE = "none"


@dataclass
class ReconciliationResult:
    """Result of reconciling one table."""

    table: str
    status: ReconciliationStatus = ReconciliationStatus.SUCCESS
    action: ReconciliationAction = ReconciliationAction.NONE
    statements: List[str] = field(default_factory=list)
    added_columns: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    dry_run: bool = False
    execution_time_ms: float = 0.0

    @property
    def changed(self) -> bool:
        """Check if any DDL was issued (or planned, in dry run)."""
        return bool(self.statements)

    @property
    def failed(self) -> bool:
        return self.status == ReconciliationStatus.FAILED


class SchemaReconciler:
    """
    Core schema reconciliation engine for dsync.

    Each call is independent: table state is read fresh and nothing is
    remembered between calls, so re-running is how a partially configured
    table gets finished.

    Only column names are compared. A live column whose type, nullability
    or default differs from its spec is left as it is.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        inspector: SchemaInspector,
        ddl: Optional[DDLBuilder] = None,
        dry_run: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.executor = executor
        self.inspector = inspector
        self.ddl = ddl or DDLBuilder()
        self.dry_run = dry_run
        self.logger = logger or logging.getLogger(__name__)

    async def reconcile_table(self, spec: TableSpec) -> ReconciliationResult:
        """
        Reconcile a single table spec.

        Args:
            spec: Desired shape of the table

        Returns:
            ReconciliationResult with the statements issued and any errors.
            Errors are logged and recorded, never raised.
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time()
        result = ReconciliationResult(table=spec.name, dry_run=self.dry_run)

        try:
            if await self.inspector.table_exists(spec.name):
                await self._add_missing_columns(spec, result)
            else:
                await self._create_table(spec, result)
        except Exception as e:
            self.logger.error(f"Reconciliation failed for table {spec.name}: {e}")
            result.errors.append(str(e))
            result.status = (
                ReconciliationStatus.PARTIAL if result.statements else ReconciliationStatus.FAILED
            )
        finally:
            result.execution_time_ms = (loop.time() - start_time) * 1000

        self.logger.debug(
            f"Reconciliation completed for {spec.name}: "
            f"{result.status.value}/{result.action.value} ({result.execution_time_ms:.1f}ms)"
        )
        return result

    async def reconcile_all(self, specs: Iterable[TableSpec]) -> Dict[str, ReconciliationResult]:
        """
        Reconcile every spec, in order.

        A failing table never stops the ones after it.
        """
        results = {}
        for spec in specs:
            results[spec.name] = await self.reconcile_table(spec)
        return results

    async def missing_columns(self, spec: TableSpec) -> List[ColumnSpec]:
        """Declared columns whose name is absent from the live table, in declared order."""
        observed = await self.inspector.list_columns(spec.name)
        existing = {column.name for column in observed}
        return [column for column in spec.columns if column.name not in existing]

    async def _create_table(self, spec: TableSpec, result: ReconciliationResult) -> None:
        steps = [("create table", self.ddl.create_table(spec))]
        if spec.keys:
            steps.append(("add keys", self.ddl.add_keys(spec)))
        if spec.auto_increment:
            steps.append(("add auto increment", self.ddl.modify_auto_increment(spec)))

        # No transaction: MySQL commits each DDL statement on its own.
        for label, sql in steps:
            try:
                await self._apply(sql, result)
            except Exception as e:
                self.logger.error(f"Failed to {label} for table {spec.name}: {e}")
                result.errors.append(f"{label}: {e}")
                result.status = (
                    ReconciliationStatus.PARTIAL
                    if result.statements
                    else ReconciliationStatus.FAILED
                )
                break
            result.action = ReconciliationAction.CREATED

        if result.action == ReconciliationAction.CREATED:
            self.logger.info(f"Table {spec.name} created")

    async def _add_missing_columns(self, spec: TableSpec, result: ReconciliationResult) -> None:
        missing = await self.missing_columns(spec)
        if not missing:
            result.action = ReconciliationAction.UNCHANGED
            self.logger.debug(f"All columns in table {spec.name} are up to date")
            return

        names = [column.name for column in missing]
        self.logger.info(f"Adding missing columns to table {spec.name}: {', '.join(names)}")
        await self._apply(self.ddl.add_columns(spec.name, missing), result)
        result.action = ReconciliationAction.ALTERED
        result.added_columns = names

    async def _apply(self, sql: str, result: ReconciliationResult) -> None:
        if self.dry_run:
            self.logger.info(f"[dry run] {sql}")
        else:
            self.logger.info(f"Executing: {sql}")
            await self.executor.execute(sql)
        result.statements.append(sql)

    def get_reconciliation_summary(
        self, results: Dict[str, ReconciliationResult]
    ) -> Dict[str, Any]:
        """Get summary of reconciliation results."""
        total = len(results)
        successful = sum(1 for r in results.values() if r.status == ReconciliationStatus.SUCCESS)
        partial = sum(1 for r in results.values() if r.status == ReconciliationStatus.PARTIAL)
        failed = sum(1 for r in results.values() if r.status == ReconciliationStatus.FAILED)

        return {
            "total_tables": total,
            "successful": successful,
            "partial": partial,
            "failed": failed,
            "created": sum(1 for r in results.values() if r.action == ReconciliationAction.CREATED),
            "altered": sum(1 for r in results.values() if r.action == ReconciliationAction.ALTERED),
            "unchanged": sum(
                1 for r in results.values() if r.action == ReconciliationAction.UNCHANGED
            ),
            "total_statements": sum(len(r.statements) for r in results.values()),
            "success_rate": successful / total if total > 0 else 0,
            "failed_tables": [
                name for name, result in results.items()
                if result.status == ReconciliationStatus.FAILED
            ],
        }
