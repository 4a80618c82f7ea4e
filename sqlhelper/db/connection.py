"""The DataConnection façade."""

import asyncio
import logging
from functools import partial
from typing import Any, Callable, Mapping, Optional, TypeVar

import pandas as pd
from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Transaction
from sqlalchemy.pool import NullPool

from sqlhelper.config.models import SQLHelperConfig
from sqlhelper.config.parser import get_settings
from sqlhelper.db.bulk import RowsLike, SchemaBulkLoader, SchemaTemplate
from sqlhelper.db.command import SqlCommand
from sqlhelper.db.connection_strings import ConnectionStringManager
from sqlhelper.db.drivers.factory import DriverFactory
from sqlhelper.db.executor import QueryExecutor
from sqlhelper.db.lifecycle import ConnectionLifecycle, EngineCache, HandleState
from sqlhelper.db.parameters import CommandType, ParametersLike
from sqlhelper.db.results import DataSet
from sqlhelper.db.sql_builder import DynamicSqlBuilder
from sqlhelper.db.timeouts import TimeoutResolver
from sqlhelper.exceptions import ConfigurationError, ConnectionFailedError, ExecutionError

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_CONNECT_TIMEOUT = 10


class DataConnection:
    """Single entry point for database operations on one connection.

    The connection is opened on first use and reopened whenever it is
    found closed. Commands issued without a transaction commit on their
    own; inside :meth:`begin_transaction` or with a ``transaction``
    argument, committing is left to the caller.

    One instance owns one connection handle. Calls on the same instance
    from several threads or tasks at once are not synchronized and must
    be serialized by the caller.

    Example:
        >>> with DataConnection("sqlite:///orders.db") as db:
        ...     db.insert_many("Orders", {"Name": "Acme", "Amount": 100})
        ...     db.exists("Orders", "Name", "Acme")
        True
    """

    def __init__(
        self,
        connection_string: Optional[str] = None,
        timeout_override: Optional[int] = None,
        *,
        settings: Optional[SQLHelperConfig] = None,
        engine_cache: Optional[EngineCache] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._engine_cache = engine_cache
        self._resolver = TimeoutResolver(self.settings.timeouts, timeout_override)
        self._builder = DynamicSqlBuilder()
        self._lifecycle = ConnectionLifecycle(connection_string, engine_cache)
        self._executor: Optional[QueryExecutor] = None

    @classmethod
    def from_key(
        cls,
        key: str,
        manager: ConnectionStringManager,
        timeout_override: Optional[int] = None,
        **kwargs: Any,
    ) -> "DataConnection":
        """Create a connection for a key resolved through ``manager``."""
        return cls(manager.get_connection_string(key), timeout_override, **kwargs)

    # ------------------------------------------------------------------
    # Configuration and lifecycle
    # ------------------------------------------------------------------

    @property
    def connection_string(self) -> Optional[str]:
        return self._lifecycle.connection_string

    @connection_string.setter
    def connection_string(self, value: Optional[str]) -> None:
        """Point at another database; the current handle is released."""
        self._lifecycle.release()
        self._lifecycle = ConnectionLifecycle(value, self._engine_cache)
        self._executor = None

    @property
    def timeout_override(self) -> Optional[int]:
        return self._resolver.instance_override

    @timeout_override.setter
    def timeout_override(self, value: Optional[int]) -> None:
        self._resolver.instance_override = value

    @property
    def state(self) -> HandleState:
        return self._lifecycle.state

    def resolve_timeout(self, timeout: Optional[int] = None) -> int:
        """Effective timeout: global override, then instance override, then ``timeout``."""
        return self._resolver.resolve(timeout)

    def acquire(self) -> Connection:
        """Return the open connection handle, opening or reopening it first."""
        return self._lifecycle.acquire()

    def close(self) -> None:
        """Release the connection handle. The instance cannot be used afterwards."""
        self._lifecycle.release()

    def __enter__(self) -> "DataConnection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    async def __aenter__(self) -> "DataConnection":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def begin_transaction(self) -> Transaction:
        """Begin a transaction the caller commits or rolls back."""
        return self._lifecycle.begin_transaction()

    @property
    def executor(self) -> QueryExecutor:
        if self._executor is None:
            self._executor = QueryExecutor(self._lifecycle.binding)
        return self._executor

    @property
    def _autocommit(self) -> bool:
        return not self._lifecycle.in_explicit_transaction

    def _command(
        self,
        sql: str,
        parameters: ParametersLike = None,
        command_type: CommandType = CommandType.TEXT,
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> SqlCommand:
        return SqlCommand.create(sql, parameters, command_type, self.resolve_timeout(timeout), transaction)

    def _prepare(self, command: SqlCommand, timeout: Optional[int], transaction: Any) -> SqlCommand:
        command.timeout = self.resolve_timeout(timeout)
        command.transaction = transaction
        return command

    async def _run_async(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    # ------------------------------------------------------------------
    # Scripts
    # ------------------------------------------------------------------

    def execute(
        self,
        sql: str,
        parameters: ParametersLike = None,
        command_type: CommandType = CommandType.TEXT,
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> None:
        """Execute a script that returns no result.

        Args:
            sql: SQL text, or the procedure name for stored procedures.
            parameters: ``{name: value}`` or a list of BoundParameter.
            command_type: Plain text or stored procedure.
            timeout: Seconds; overridden by the instance and global overrides.
            transaction: Transaction from :meth:`begin_transaction`.

        Raises:
            ExecutionError: If the database reports an error.
            CommandTimeoutError: If the command exceeds its timeout.
        """
        command = self._command(sql, parameters, command_type, timeout, transaction)
        self.executor.execute(self.acquire(), command, self._autocommit)

    def execute_scalar(
        self,
        sql: str,
        parameters: ParametersLike = None,
        command_type: CommandType = CommandType.TEXT,
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> Optional[Any]:
        """First column of the first row, or None when there is no row."""
        command = self._command(sql, parameters, command_type, timeout, transaction)
        return self.executor.execute_scalar(self.acquire(), command, self._autocommit)

    def execute_insert(
        self,
        sql: str,
        parameters: ParametersLike = None,
        command_type: CommandType = CommandType.TEXT,
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> int:
        """Run an insert that selects its generated id and return that id.

        Raises:
            ConversionError: If the returned value is not an integer.
        """
        command = self._command(sql, parameters, command_type, timeout, transaction)
        return self.executor.execute_insert(self.acquire(), command, self._autocommit)

    def query(
        self,
        sql: str,
        parameters: ParametersLike = None,
        command_type: CommandType = CommandType.TEXT,
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> pd.DataFrame:
        """Run a query and return its rows as a DataFrame."""
        command = self._command(sql, parameters, command_type, timeout, transaction)
        return self.executor.query(self.acquire(), command, self._autocommit)

    def query_data_set(
        self,
        sql: str,
        parameters: ParametersLike = None,
        command_type: CommandType = CommandType.TEXT,
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> DataSet:
        """Run a script and return every result set it produces."""
        command = self._command(sql, parameters, command_type, timeout, transaction)
        return self.executor.query_data_set(self.acquire(), command, self._autocommit)

    async def execute_async(self, *args: Any, **kwargs: Any) -> None:
        return await self._run_async(self.execute, *args, **kwargs)

    async def execute_scalar_async(self, *args: Any, **kwargs: Any) -> Optional[Any]:
        return await self._run_async(self.execute_scalar, *args, **kwargs)

    async def execute_insert_async(self, *args: Any, **kwargs: Any) -> int:
        return await self._run_async(self.execute_insert, *args, **kwargs)

    async def query_async(self, *args: Any, **kwargs: Any) -> pd.DataFrame:
        return await self._run_async(self.query, *args, **kwargs)

    async def query_data_set_async(self, *args: Any, **kwargs: Any) -> DataSet:
        return await self._run_async(self.query_data_set, *args, **kwargs)

    # ------------------------------------------------------------------
    # Generated SQL
    # ------------------------------------------------------------------

    def insert_one(
        self,
        table: str,
        id_column: str,
        id_value: Any,
        value_column: str,
        value: Any,
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> None:
        """Insert a row made of an id and a single value."""
        command = self._builder.insert_one(table, id_column, id_value, value_column, value)
        self.executor.execute(self.acquire(), self._prepare(command, timeout, transaction), self._autocommit)

    def update_one(
        self,
        table: str,
        id_column: str,
        id_value: Any,
        value_column: str,
        value: Any,
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> None:
        """Set ``value_column`` on the rows whose ``id_column`` equals ``id_value``."""
        command = self._builder.update_one(table, id_column, id_value, value_column, value)
        self.executor.execute(self.acquire(), self._prepare(command, timeout, transaction), self._autocommit)

    def insert_many(
        self,
        table: str,
        data: Mapping[str, Any],
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> None:
        """Insert one row from a column -> value mapping.

        Raises:
            ArgumentError: If ``data`` is None or empty.
        """
        command = self._builder.insert_many(table, data)
        self.executor.execute(self.acquire(), self._prepare(command, timeout, transaction), self._autocommit)

    def insert_many_with_id(
        self,
        table: str,
        id_column: str,
        id_value: Any,
        data: Mapping[str, Any],
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> None:
        """Insert one row with an explicit id followed by ``data``."""
        command = self._builder.insert_many_with_id(table, id_column, id_value, data)
        self.executor.execute(self.acquire(), self._prepare(command, timeout, transaction), self._autocommit)

    def update_many(
        self,
        table: str,
        id_column: str,
        id_value: Any,
        data: Mapping[str, Any],
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> None:
        """Update the columns in ``data`` on the rows matching the id."""
        command = self._builder.update_many(table, id_column, id_value, data)
        self.executor.execute(self.acquire(), self._prepare(command, timeout, transaction), self._autocommit)

    def update_many_where(
        self,
        table: str,
        where: Optional[Mapping[str, Any]],
        data: Mapping[str, Any],
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> None:
        """Update the columns in ``data`` on the rows matching every ``where`` term.

        An empty ``where`` updates every row.
        """
        command = self._builder.update_many_where(table, where, data)
        self.executor.execute(self.acquire(), self._prepare(command, timeout, transaction), self._autocommit)

    def exists(
        self,
        table: str,
        column: str,
        value: Any,
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> bool:
        """True when some row has ``column`` equal to ``value``."""
        command = self._builder.exists(table, column, value)
        return self.executor.has_rows(self.acquire(), self._prepare(command, timeout, transaction), self._autocommit)

    def exists_where(
        self,
        table: str,
        column: str,
        where: Optional[Mapping[str, Any]],
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> bool:
        """True when some row matches every ``where`` term (any row when empty)."""
        command = self._builder.exists_where(table, column, where)
        return self.executor.has_rows(self.acquire(), self._prepare(command, timeout, transaction), self._autocommit)

    async def insert_one_async(self, *args: Any, **kwargs: Any) -> None:
        return await self._run_async(self.insert_one, *args, **kwargs)

    async def update_one_async(self, *args: Any, **kwargs: Any) -> None:
        return await self._run_async(self.update_one, *args, **kwargs)

    async def insert_many_async(self, *args: Any, **kwargs: Any) -> None:
        return await self._run_async(self.insert_many, *args, **kwargs)

    async def insert_many_with_id_async(self, *args: Any, **kwargs: Any) -> None:
        return await self._run_async(self.insert_many_with_id, *args, **kwargs)

    async def update_many_async(self, *args: Any, **kwargs: Any) -> None:
        return await self._run_async(self.update_many, *args, **kwargs)

    async def update_many_where_async(self, *args: Any, **kwargs: Any) -> None:
        return await self._run_async(self.update_many_where, *args, **kwargs)

    async def exists_async(self, *args: Any, **kwargs: Any) -> bool:
        return await self._run_async(self.exists, *args, **kwargs)

    async def exists_where_async(self, *args: Any, **kwargs: Any) -> bool:
        return await self._run_async(self.exists_where, *args, **kwargs)

    # ------------------------------------------------------------------
    # Bulk load and schema
    # ------------------------------------------------------------------

    def _bulk_loader(self) -> SchemaBulkLoader:
        return SchemaBulkLoader(self.executor, self._builder, self.settings.bulk_copy.batch_size)

    def get_schema_template(
        self,
        table: str,
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> SchemaTemplate:
        """Column shape of ``table``, read without fetching rows."""
        return self._bulk_loader().get_schema_template(
            self.acquire(), table, self.resolve_timeout(timeout), transaction, self._autocommit
        )

    def bulk_insert(
        self,
        table: str,
        rows: RowsLike,
        timeout: Optional[int] = None,
        transaction: Any = None,
    ) -> int:
        """Load ``rows`` (mappings or a DataFrame) into ``table``.

        The table's first column is assumed to be generated and is never
        written. Row keys must match the remaining column names exactly.

        Returns:
            Number of rows inserted.

        Raises:
            SchemaNotFoundError: If the table cannot be probed.
            ArgumentError: If a row names a column the table does not have.
        """
        return self._bulk_loader().bulk_insert(
            self.acquire(), table, rows, self.resolve_timeout(timeout), transaction, self._autocommit
        )

    async def bulk_insert_async(self, *args: Any, **kwargs: Any) -> int:
        return await self._run_async(self.bulk_insert, *args, **kwargs)

    def does_table_view_exist(self, name: str) -> bool:
        """True when a table or view called ``name`` exists."""
        handle = self.acquire()
        try:
            inspector = inspect(handle)
            found = inspector.has_table(name) or name in inspector.get_view_names()
        except Exception as e:
            raise ExecutionError(f"Error occurred looking up table or view {name}", details={'driver_error': str(e)}) from e
        finally:
            if self._autocommit and handle.in_transaction():
                handle.rollback()
        return found

    # ------------------------------------------------------------------
    # Health checks
    # ------------------------------------------------------------------

    @staticmethod
    def can_connect(
        connection_string: str,
        timeout: int = DEFAULT_CONNECT_TIMEOUT,
        suppress_errors: bool = False,
        settings: Optional[SQLHelperConfig] = None,
    ) -> bool:
        """Check that a connection can be opened.

        Only the global timeout override applies to ``timeout``.

        Raises:
            ConfigurationError: If the connection string is invalid.
            ConnectionFailedError: If the connection fails.
            Neither is raised when ``suppress_errors`` is True; False is
            returned instead.
        """
        settings = settings or get_settings()
        login_timeout = TimeoutResolver(settings.timeouts).resolve_global(timeout)

        try:
            binding = DriverFactory.create_binding(connection_string)
            engine = binding.create_engine(login_timeout=login_timeout, poolclass=NullPool)
            try:
                with engine.connect():
                    pass
            finally:
                engine.dispose()
            return True

        except ConfigurationError as e:
            if suppress_errors:
                logger.warning(f"Connection check failed: {e}")
                return False
            raise

        except Exception as e:
            if suppress_errors:
                logger.warning(f"Connection check failed: {e}")
                return False
            raise ConnectionFailedError(f"Unable to connect to database: {e}") from e

    @staticmethod
    async def can_connect_async(
        connection_string: str,
        timeout: int = DEFAULT_CONNECT_TIMEOUT,
        suppress_errors: bool = False,
        settings: Optional[SQLHelperConfig] = None,
    ) -> bool:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            None, partial(DataConnection.can_connect, connection_string, timeout, suppress_errors, settings)
        )

    def __repr__(self) -> str:
        return f"DataConnection(state={self.state.value}, timeout_override={self.timeout_override})"
