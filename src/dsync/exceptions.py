"""
Exception classes for dsync.
"""

from typing import Any, Dict, Optional


class DSyncError(Exception):
    """Base exception for all dsync errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(DSyncError):
    """Raised when there's an error in configuration."""

    pass


class DatabaseError(DSyncError):
    """Raised when there's an error with database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when there's an error establishing or maintaining database connections."""

    pass


class DatabaseConfigurationError(DatabaseError):
    """Raised when a required connection setting is missing or invalid."""

    pass


class PoolExhaustedError(DatabaseError):
    """Raised when no pooled connection is free and the pool may not wait."""

    def __init__(
        self,
        connection_limit: int,
        waiting: int = 0,
        queue_limit: int = 0,
    ) -> None:
        details: Dict[str, Any] = {"connection_limit": connection_limit}
        if queue_limit:
            details["waiting"] = waiting
            details["queue_limit"] = queue_limit
        super().__init__("No free connection available in pool", details)
        self.connection_limit = connection_limit
        self.waiting = waiting
        self.queue_limit = queue_limit


class SchemaError(DatabaseError):
    """Raised when there's an error with database schema operations."""

    pass


class ExportError(DSyncError):
    """Raised when the database dump process fails."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if returncode is not None:
            details["returncode"] = returncode
        if stderr:
            details["stderr"] = stderr.strip()
        super().__init__(message, details, cause)
        self.returncode = returncode
        self.stderr = stderr
