"""SQLHelper: a thin data-access layer over SQLAlchemy drivers.

SQLHelper provides:
- Parameterized scripts, scalar lookups and DataFrame queries
- Generated INSERT, UPDATE and existence-check SQL from plain mappings
- Schema-driven bulk loading in fixed-size batches
- Timeout overrides at process, connection and call level
- Blocking and asyncio variants of every operation
"""

__version__ = "0.1.0"

# Core exports
from sqlhelper.db import (
    BoundParameter,
    CommandType,
    ConnectionStringManager,
    DataConnection,
    DataSet,
)
from sqlhelper.exceptions import (
    ArgumentError,
    CommandTimeoutError,
    ConfigurationError,
    ConnectionFailedError,
    ConnectionStringNotFoundError,
    ConversionError,
    ExecutionError,
    SchemaNotFoundError,
    SQLHelperError,
)

__all__ = [
    "__version__",
    "BoundParameter",
    "CommandType",
    "ConnectionStringManager",
    "DataConnection",
    "DataSet",
    "SQLHelperError",
    "ArgumentError",
    "CommandTimeoutError",
    "ConfigurationError",
    "ConnectionFailedError",
    "ConnectionStringNotFoundError",
    "ConversionError",
    "ExecutionError",
    "SchemaNotFoundError",
]
