"""
dsync: declarative MySQL schema synchronization.

dsync keeps MySQL tables in line with declared specs, creating missing
tables and adding missing columns, on top of a pooled, deadlock-retrying
query executor.
"""

__version__ = "0.1.0"
__author__ = "dsync Contributors"

from .config import DSyncConfig
from .client import SchemaSync
from .schema.specs import ColumnSpec, KeySpec, TableSpec
from .exceptions import DSyncError, ConfigurationError, DatabaseError, SchemaError

__all__ = [
    "__version__",
    "DSyncConfig",
    "SchemaSync",
    "ColumnSpec",
    "KeySpec",
    "TableSpec",
    "DSyncError",
    "ConfigurationError",
    "DatabaseError",
    "SchemaError",
]
