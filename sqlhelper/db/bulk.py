"""Schema-driven bulk loading."""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd
from sqlalchemy.engine import Connection

from sqlhelper.config.models import DEFAULT_BULK_BATCH_SIZE
from sqlhelper.db.command import SqlCommand
from sqlhelper.db.executor import QueryExecutor
from sqlhelper.db.parameters import DATA_PARAMETER_PREFIX, ParameterBinder
from sqlhelper.db.results import SchemaColumn
from sqlhelper.db.sql_builder import DynamicSqlBuilder
from sqlhelper.exceptions import ArgumentError, CommandTimeoutError, ExecutionError, SchemaNotFoundError

logger = logging.getLogger(__name__)

RowsLike = Union[pd.DataFrame, Iterable[Mapping[str, Any]]]


@dataclass
class SchemaTemplate:
    """Column shape of a table as reported by the schema probe."""

    table: str
    columns: List[SchemaColumn] = field(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def without_leading_column(self) -> "SchemaTemplate":
        """The insertable template: the leading identity column removed."""
        return SchemaTemplate(self.table, self.columns[1:])

    def __contains__(self, name: str) -> bool:
        return name in self.column_names


def _as_records(rows: RowsLike) -> List[Mapping[str, Any]]:
    if isinstance(rows, pd.DataFrame):
        return rows.to_dict(orient='records')
    if rows is None:
        raise ArgumentError("You must provide rows to bulk insert")
    return list(rows)


class SchemaBulkLoader:
    """Loads many rows into a table whose shape is discovered at run time.

    The table is probed first; its leading column is treated as a
    system-generated identity and never written. Every row key must name
    one of the remaining columns exactly (case-sensitive). Rows are then
    sent in batches of ``batch_size``.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        builder: Optional[DynamicSqlBuilder] = None,
        batch_size: int = DEFAULT_BULK_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ArgumentError("Batch size must be at least 1")
        self.executor = executor
        self.builder = builder or DynamicSqlBuilder()
        self.batch_size = batch_size

    def get_schema_template(
        self,
        connection: Connection,
        table: str,
        timeout: int,
        transaction: Any = None,
        autocommit: bool = True,
    ) -> SchemaTemplate:
        """Probe ``table`` without fetching rows.

        Raises:
            SchemaNotFoundError: If the table cannot be probed or has no columns.
            CommandTimeoutError: If the probe itself times out.
        """
        if not table or not table.strip():
            raise ArgumentError("Table name must not be empty")

        probe = SqlCommand(self.executor.driver.schema_probe_sql(table), timeout=timeout, transaction=transaction)
        try:
            columns = self.executor.fetch_schema(connection, probe, autocommit)
        except CommandTimeoutError:
            raise
        except ExecutionError as e:
            raise SchemaNotFoundError(
                f"Could not load the schema of {table}: {e.__cause__ or e}",
                table=table,
            ) from e

        if not columns:
            raise SchemaNotFoundError(f"No schema was returned for {table}", table=table)

        return SchemaTemplate(table, columns)

    def validate_rows(self, template: SchemaTemplate, records: Sequence[Mapping[str, Any]]) -> None:
        """Every key of every row must be an insertable column."""
        allowed = set(template.column_names)
        for record in records:
            for key in record.keys():
                if key not in allowed:
                    raise ArgumentError(
                        f"{template.table} does not contain a column called {key}. "
                        f"Check the case of the column name",
                        table=template.table,
                        column=key,
                    )

    def bulk_insert(
        self,
        connection: Connection,
        table: str,
        rows: RowsLike,
        timeout: int,
        transaction: Any = None,
        autocommit: bool = True,
    ) -> int:
        """Insert ``rows`` into ``table``.

        Only columns supplied by at least one row are written, in table
        order; a row missing one of them writes NULL there. When no row
        supplies any column every column is written as NULL. Duplicate
        keys surface as driver errors.

        Returns:
            Number of rows inserted.
        """
        records = _as_records(rows)
        template = self.get_schema_template(connection, table, timeout, transaction, autocommit).without_leading_column()
        self.validate_rows(template, records)

        if not records:
            logger.info(f"No rows to bulk insert into {table}")
            return 0

        if not template.column_names:
            raise ArgumentError(f"{table} has no insertable columns", table=table)

        supplied = {key for record in records for key in record.keys()}
        columns = [name for name in template.column_names if name in supplied] or template.column_names

        binder = ParameterBinder(DATA_PARAMETER_PREFIX)
        parameters = [binder.bind_value(None, index) for index in range(1, len(columns) + 1)]
        sql = self.builder.insert_sql(table, columns, [parameter.name for parameter in parameters])
        command = SqlCommand(sql, parameters, timeout=timeout, transaction=transaction)

        values = [[record.get(column) for column in columns] for record in records]
        batches = self.executor.execute_batches(connection, command, values, self.batch_size, autocommit)

        logger.info(f"Bulk inserted {len(records)} rows into {table} in {batches} batches")
        return len(records)
