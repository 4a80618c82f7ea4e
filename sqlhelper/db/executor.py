"""Command execution against an open connection handle."""

import logging
import time
from contextlib import contextmanager
from typing import Any, Generator, List, Optional, Sequence, Tuple

import pandas as pd
from sqlalchemy.engine import Connection

from sqlhelper.db.command import NAMED_STYLES, DriverParameters, SqlCommand
from sqlhelper.db.drivers.base import DriverBinding
from sqlhelper.db.parameters import CommandType, to_db_value
from sqlhelper.db.results import DataSet, SchemaColumn, frame_from_rows, to_int_identifier
from sqlhelper.exceptions import ArgumentError, CommandTimeoutError, ExecutionError, SQLHelperError

logger = logging.getLogger(__name__)


def _next_result(cursor: Any) -> bool:
    next_set = getattr(cursor, 'nextset', None)
    return bool(next_set is not None and next_set())


def _advance_to_rows(cursor: Any) -> bool:
    """Move ``cursor`` to its first result that has a row description."""
    while not cursor.description:
        if not _next_result(cursor):
            return False
    return True


class QueryExecutor:
    """Runs generated commands on an open SQLAlchemy connection.

    Every command is a single round trip. Driver failures are wrapped in
    :class:`ExecutionError` (or :class:`CommandTimeoutError`) carrying the
    command text. When a command runs without a caller transaction its
    implicit transaction is committed on success and rolled back on
    failure.
    """

    def __init__(self, driver: DriverBinding) -> None:
        self.driver = driver

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def execute(self, connection: Connection, command: SqlCommand, autocommit: bool = True) -> None:
        """Run the command as a non-query."""
        with self._run(connection, command, autocommit) as (sql, params):
            connection.exec_driver_sql(sql, params).close()

    def execute_scalar(self, connection: Connection, command: SqlCommand, autocommit: bool = True) -> Optional[Any]:
        """First column of the first row, or None when there are no rows.

        Leading results without rows, such as the row count of an INSERT
        ahead of a trailing SELECT, are skipped.
        """
        with self._run(connection, command, autocommit) as (sql, params):
            with self._cursor(connection, sql, params) as cursor:
                if not _advance_to_rows(cursor):
                    return None
                row = cursor.fetchone()
                return row[0] if row is not None else None

    def execute_insert(self, connection: Connection, command: SqlCommand, autocommit: bool = True) -> int:
        """Run an insert whose scalar result is the generated identifier.

        Raises:
            ConversionError: If the scalar is not integer-convertible.
        """
        return to_int_identifier(self.execute_scalar(connection, command, autocommit))

    def has_rows(self, connection: Connection, command: SqlCommand, autocommit: bool = True) -> bool:
        """True when the command yields at least one row, whatever its content."""
        with self._run(connection, command, autocommit) as (sql, params):
            result = connection.exec_driver_sql(sql, params)
            if not result.returns_rows:
                return False
            return result.first() is not None

    def query(self, connection: Connection, command: SqlCommand, autocommit: bool = True) -> pd.DataFrame:
        """Materialize the first result set that has rows into a DataFrame."""
        with self._run(connection, command, autocommit) as (sql, params):
            with self._cursor(connection, sql, params) as cursor:
                if not _advance_to_rows(cursor):
                    return pd.DataFrame()
                columns = [column[0] for column in cursor.description]
                return frame_from_rows(cursor.fetchall(), columns)

    def query_data_set(self, connection: Connection, command: SqlCommand, autocommit: bool = True) -> DataSet:
        """Materialize every result set the command returns.

        Multiple result sets need the driver cursor's ``nextset``; drivers
        without it yield a single table.
        """
        with self._run(connection, command, autocommit) as (sql, params):
            with self._cursor(connection, sql, params) as cursor:
                tables: List[pd.DataFrame] = []
                while True:
                    if cursor.description:
                        columns = [column[0] for column in cursor.description]
                        tables.append(frame_from_rows(cursor.fetchall(), columns))
                    if not _next_result(cursor):
                        break
                return DataSet(tables)

    def fetch_schema(self, connection: Connection, command: SqlCommand, autocommit: bool = True) -> List[SchemaColumn]:
        """Column shape of the command's result without fetching any rows."""
        with self._run(connection, command, autocommit) as (sql, params):
            result = connection.exec_driver_sql(sql, params)
            try:
                description = result.cursor.description if result.cursor is not None else None
            finally:
                result.close()

        if not description:
            return []
        return [SchemaColumn(name=column[0], type_code=column[1]) for column in description]

    def execute_batches(
        self,
        connection: Connection,
        command: SqlCommand,
        rows: Sequence[Sequence[Any]],
        batch_size: int,
        autocommit: bool = True,
    ) -> int:
        """Run ``command`` once per row, sending ``batch_size`` rows per round trip.

        ``command`` is a template whose parameters line up positionally
        with every row. Returns the number of batches sent.
        """
        if batch_size < 1:
            raise ArgumentError("Batch size must be at least 1")

        batches = 0
        with self._run(connection, command, autocommit) as (sql, _):
            paramstyle = connection.dialect.paramstyle
            names = [parameter.name.lstrip("@") for parameter in command.parameters]

            for start in range(0, len(rows), batch_size):
                batch = rows[start:start + batch_size]
                if paramstyle in NAMED_STYLES:
                    parameter_sets: List[Any] = [
                        {name: to_db_value(value) for name, value in zip(names, row)} for row in batch
                    ]
                else:
                    parameter_sets = [tuple(to_db_value(value) for value in row) for row in batch]

                connection.exec_driver_sql(sql, parameter_sets)
                batches += 1
                logger.debug(f"Sent batch {batches} ({len(batch)} rows)")

        return batches

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def render(self, connection: Connection, command: SqlCommand) -> Tuple[str, DriverParameters]:
        """Render the command in the connection's DB-API paramstyle."""
        if command.command_type == CommandType.STORED_PROCEDURE and not self.driver.supports_procedures:
            raise ArgumentError(f"Stored procedures are not supported by the {self.driver.name} driver")
        return command.render(connection.dialect.paramstyle)

    @contextmanager
    def _cursor(self, connection: Connection, sql: str, params: DriverParameters) -> Generator[Any, None, None]:
        """Execute on a raw driver cursor, which exposes every result set."""
        if not connection.in_transaction():
            connection.begin()

        cursor = connection.connection.cursor()
        try:
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, params)
            yield cursor
        finally:
            cursor.close()

    def _check_transaction(self, connection: Connection, command: SqlCommand) -> None:
        transaction = command.transaction
        if transaction is None:
            return
        if not getattr(transaction, 'is_active', False):
            raise ArgumentError("The supplied transaction is no longer active")
        if getattr(transaction, 'connection', None) is not connection:
            raise ArgumentError("The supplied transaction belongs to a different connection")

    @contextmanager
    def _run(
        self,
        connection: Connection,
        command: SqlCommand,
        autocommit: bool,
    ) -> Generator[Tuple[str, DriverParameters], None, None]:
        self._check_transaction(connection, command)
        autocommit = autocommit and command.transaction is None
        sql, params = self.render(connection, command)

        logger.debug(
            f"Executing {command.command_type.value} command "
            f"({len(command.parameters)} parameters, timeout {command.timeout}s): {command.text}"
        )
        start_time = time.time()

        try:
            with self.driver.command_timeout(connection, command.timeout):
                yield sql, params
            if autocommit and connection.in_transaction():
                connection.commit()

        except SQLHelperError:
            self._rollback(connection, autocommit)
            raise

        except Exception as e:
            self._rollback(connection, autocommit)
            execution_time = time.time() - start_time

            if self.driver.is_timeout(e):
                raise CommandTimeoutError(
                    f"Command timed out after {execution_time:.2f}s "
                    f"(timeout {command.timeout}s): {command.text}",
                    sql=command.text,
                    timeout=command.timeout,
                ) from e

            raise ExecutionError(
                f"Error occurred running the query: {command.text}",
                sql=command.text,
                details={'execution_time': execution_time, 'driver_error': str(e)},
            ) from e

    def _rollback(self, connection: Connection, autocommit: bool) -> None:
        if not autocommit or not connection.in_transaction():
            return
        try:
            connection.rollback()
        except Exception as e:
            logger.warning(f"Rollback after failed command also failed: {e}")
