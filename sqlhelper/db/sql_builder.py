"""Dynamic SQL generation for the script-less operations.

Table and column names are interpolated as raw text; only values are
parameterized. Identifiers must come from trusted code, never from
untrusted input.
"""

from typing import Any, List, Mapping, Optional, Sequence, Tuple

from sqlhelper.db.command import SqlCommand
from sqlhelper.db.parameters import (
    DATA_PARAMETER_PREFIX,
    WHERE_PARAMETER_PREFIX,
    BoundParameter,
    ParameterBinder,
)
from sqlhelper.exceptions import ArgumentError


def _require_identifier(value: str, what: str) -> str:
    if not value or not str(value).strip():
        raise ArgumentError(f"{what} must not be empty")
    return value


class DynamicSqlBuilder:
    """Builds INSERT, UPDATE, WHERE and existence-check commands."""

    def __init__(self) -> None:
        self.data_binder = ParameterBinder(DATA_PARAMETER_PREFIX)
        self.where_binder = ParameterBinder(WHERE_PARAMETER_PREFIX)

    # ------------------------------------------------------------------
    # Text generation
    # ------------------------------------------------------------------

    @staticmethod
    def insert_sql(table: str, columns: Sequence[str], tokens: Sequence[str]) -> str:
        """``INSERT INTO {table} (c1,c2) VALUES (@Param1,@Param2)``."""
        if len(columns) != len(tokens):
            raise ArgumentError("Column and parameter counts differ")
        return f"INSERT INTO {table} ({','.join(columns)}) VALUES ({','.join(tokens)})"

    @staticmethod
    def set_clause(columns: Sequence[str], tokens: Sequence[str]) -> str:
        return ", ".join(f"{column}={token}" for column, token in zip(columns, tokens))

    def where_clause(self, where: Optional[Mapping[str, Any]]) -> Tuple[str, List[BoundParameter]]:
        """Build ``" WHERE c1 = @WhereParam1 AND c2 = @WhereParam2"``.

        An empty or None mapping yields an empty fragment and no parameters.
        """
        parameters, tokens = self.where_binder.bind(where, required=False)
        if not parameters:
            return "", []

        terms = [f"{column} = {token}" for column, token in zip(where.keys(), tokens)]
        return " WHERE " + " AND ".join(terms), parameters

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def insert_one(self, table: str, id_column: str, id_value: Any, value_column: str, value: Any) -> SqlCommand:
        _require_identifier(table, "Table name")
        parameters = [self.data_binder.bind_value(id_value, 1), self.data_binder.bind_value(value, 2)]
        sql = self.insert_sql(table, [id_column, value_column], [p.name for p in parameters])
        return SqlCommand(sql, parameters)

    def update_one(self, table: str, id_column: str, id_value: Any, value_column: str, value: Any) -> SqlCommand:
        _require_identifier(table, "Table name")
        parameters = [self.data_binder.bind_value(id_value, 1), self.data_binder.bind_value(value, 2)]
        sql = f"UPDATE {table} SET {value_column} = @Param2 WHERE {id_column} = @Param1"
        return SqlCommand(sql, parameters)

    def insert_many(self, table: str, data: Mapping[str, Any]) -> SqlCommand:
        _require_identifier(table, "Table name")
        parameters, tokens = self.data_binder.bind(data, operation="insert_many")
        return SqlCommand(self.insert_sql(table, list(data.keys()), tokens), parameters)

    def insert_many_with_id(self, table: str, id_column: str, id_value: Any, data: Mapping[str, Any]) -> SqlCommand:
        """Insert with the id bound first as ``@Param1``; data continues from ``@Param2``."""
        _require_identifier(table, "Table name")
        parameters, tokens = self.data_binder.bind(data, start=2, operation="insert_many_with_id")
        id_parameter = self.data_binder.bind_value(id_value, 1)
        sql = self.insert_sql(table, [id_column, *data.keys()], [id_parameter.name, *tokens])
        return SqlCommand(sql, [id_parameter, *parameters])

    def update_many(self, table: str, id_column: str, id_value: Any, data: Mapping[str, Any]) -> SqlCommand:
        _require_identifier(table, "Table name")
        parameters, tokens = self.data_binder.bind(data, start=2, operation="update_many")
        id_parameter = self.data_binder.bind_value(id_value, 1)
        sql = f"UPDATE {table} SET {self.set_clause(list(data.keys()), tokens)} WHERE {id_column} = @Param1"
        return SqlCommand(sql, [id_parameter, *parameters])

    def update_many_where(self, table: str, where: Optional[Mapping[str, Any]], data: Mapping[str, Any]) -> SqlCommand:
        """Update with an arbitrary conjunctive predicate.

        An empty ``where`` produces no WHERE clause, so every row is updated.
        """
        _require_identifier(table, "Table name")
        parameters, tokens = self.data_binder.bind(data, operation="update_many_where")
        where_sql, where_parameters = self.where_clause(where)
        sql = f"UPDATE {table} SET {self.set_clause(list(data.keys()), tokens)}{where_sql}"
        return SqlCommand(sql, [*parameters, *where_parameters])

    def exists(self, table: str, column: str, value: Any) -> SqlCommand:
        _require_identifier(table, "Table name")
        parameter = self.data_binder.bind_value(value, 1)
        sql = f"SELECT {column} from {table} WHERE {column} = @Param1"
        return SqlCommand(sql, [parameter])

    def exists_where(self, table: str, column: str, where: Optional[Mapping[str, Any]]) -> SqlCommand:
        _require_identifier(table, "Table name")
        where_sql, parameters = self.where_clause(where)
        return SqlCommand(f"SELECT {column} from {table}{where_sql}", parameters)
