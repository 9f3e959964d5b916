"""
Database integration package for dsync.

This package provides:
- Async MySQL connection pooling
- Query execution with deadlock retry
- Table and column introspection
- Database health checks
"""

from .connection import ConnectionConfig, ConnectionPool, PooledConnection
from .executor import QueryExecutor, is_lock_conflict
from .introspection import SchemaInspector, ObservedColumn
from .health import DatabaseHealthChecker, HealthCheckResult, HealthStatus

__all__ = [
    "ConnectionConfig",
    "ConnectionPool",
    "PooledConnection",
    "QueryExecutor",
    "is_lock_conflict",
    "SchemaInspector",
    "ObservedColumn",
    "DatabaseHealthChecker",
    "HealthCheckResult",
    "HealthStatus",
]
