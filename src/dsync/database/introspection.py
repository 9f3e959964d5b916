"""
Database schema introspection for dsync.

Reads table and column metadata from MySQL's information_schema,
scoped to the database the pool is connected to.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .executor import QueryExecutor
from ..exceptions import SchemaError


@dataclass(frozen=True)
class ObservedColumn:
    """Snapshot of a live column as reported by information_schema."""

    name: str
    nullable: bool
    column_type: str
    default_value: Optional[str] = None

    def __str__(self) -> str:
        result = f"{self.name} {self.column_type}"
        if not self.nullable:
            result += " NOT NULL"
        if self.default_value is not None:
            result += f" DEFAULT {self.default_value}"
        return result


class SchemaInspector:
    """Table and column metadata lookups."""

    def __init__(
        self,
        executor: QueryExecutor,
        database: str,
        logger: Optional[logging.Logger] = None,
    ):
        self.executor = executor
        self.database = database
        self.logger = logger or logging.getLogger(__name__)

    async def table_exists(self, table: str) -> bool:
        """Check if a table exists."""
        query = """
            SELECT COUNT(*) AS table_count
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_name = %s
        """

        try:
            rows = await self.executor.execute(query, (self.database, table))
        except Exception as e:
            self.logger.error(f"Error checking table existence for {self.database}.{table}: {e}")
            raise SchemaError(f"Failed to check table existence: {e}", cause=e) from e

        return bool(rows) and int(rows[0]["table_count"]) > 0

    async def list_columns(self, table: str) -> List[ObservedColumn]:
        """Get all columns for a table, in ordinal order."""
        query = """
            SELECT COLUMN_NAME AS column_name,
                   IS_NULLABLE AS is_nullable,
                   COLUMN_TYPE AS column_type,
                   COLUMN_DEFAULT AS column_default
            FROM information_schema.columns
            WHERE table_schema = %s
              AND table_name = %s
            ORDER BY ORDINAL_POSITION
        """

        try:
            rows = await self.executor.execute(query, (self.database, table))
        except Exception as e:
            self.logger.error(f"Error getting columns for {self.database}.{table}: {e}")
            raise SchemaError(f"Failed to get columns: {e}", cause=e) from e

        return [
            ObservedColumn(
                name=row["column_name"],
                nullable=row["is_nullable"] == "YES",
                column_type=row["column_type"],
                default_value=row["column_default"],
            )
            for row in rows
        ]
