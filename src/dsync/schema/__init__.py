"""
Schema management package for dsync.

This package provides:
- Declared table specs (columns, keys, auto-increment)
- DDL rendering with quoted identifiers
- Create-or-alter schema reconciliation
"""

from .specs import ColumnSpec, KeySpec, TableSpec
from .ddl import DDLBuilder, quote_identifier
from .reconciler import (
    SchemaReconciler,
    ReconciliationResult,
    ReconciliationStatus,
    ReconciliationAction,
)

__all__ = [
    "ColumnSpec",
    "KeySpec",
    "TableSpec",
    "DDLBuilder",
    "quote_identifier",
    "SchemaReconciler",
    "ReconciliationResult",
    "ReconciliationStatus",
    "ReconciliationAction",
]
