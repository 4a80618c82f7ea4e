"""Core exceptions for SQLHelper."""

from typing import Any, Dict, Optional


class SQLHelperError(Exception):
    """Base exception for all SQLHelper errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(SQLHelperError):
    """Raised when configuration is missing, invalid or cannot be resolved."""
    pass


class ConnectionStringNotFoundError(ConfigurationError):
    """Raised when no resolution layer yields a connection string for a key."""

    def __init__(self, message: str, key: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.key = key


class SchemaNotFoundError(ConfigurationError):
    """Raised when the schema probe of a table returns no schema."""

    def __init__(self, message: str, table: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.table = table


class ArgumentError(SQLHelperError, ValueError):
    """Raised when a caller supplies an invalid argument."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        column: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.table = table
        self.column = column


class ExecutionError(SQLHelperError):
    """Raised when the driver fails while executing a command.

    The attempted SQL text is kept on ``sql`` and the driver error is
    chained as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        sql: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.sql = sql


class CommandTimeoutError(ExecutionError):
    """Raised when a command runs longer than its resolved timeout."""

    def __init__(
        self,
        message: str,
        sql: Optional[str] = None,
        timeout: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, sql, details)
        self.timeout = timeout


class ConnectionFailedError(ExecutionError):
    """Raised when a connection health check fails."""
    pass


class ConversionError(SQLHelperError):
    """Raised when a result value cannot be converted to the expected type."""

    def __init__(
        self,
        message: str,
        value: Any = None,
        target_type: Optional[type] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.value = value
        self.target_type = target_type
