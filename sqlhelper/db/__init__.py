"""Database access: command building, execution and connection lifecycle."""

from sqlhelper.db.bulk import SchemaBulkLoader, SchemaTemplate
from sqlhelper.db.command import SqlCommand, render_sql
from sqlhelper.db.connection import DataConnection
from sqlhelper.db.connection_strings import ConnectionStringManager, environment_loader
from sqlhelper.db.executor import QueryExecutor
from sqlhelper.db.lifecycle import ConnectionLifecycle, EngineCache, HandleState, default_engine_cache
from sqlhelper.db.parameters import DB_NULL, BoundParameter, CommandType, ParameterBinder
from sqlhelper.db.results import DataSet, SchemaColumn
from sqlhelper.db.sql_builder import DynamicSqlBuilder
from sqlhelper.db.timeouts import TimeoutResolver

__all__ = [
    # Facade
    "DataConnection",
    # Commands
    "DB_NULL",
    "BoundParameter",
    "CommandType",
    "DynamicSqlBuilder",
    "ParameterBinder",
    "SqlCommand",
    "render_sql",
    # Execution
    "DataSet",
    "QueryExecutor",
    "SchemaBulkLoader",
    "SchemaColumn",
    "SchemaTemplate",
    "TimeoutResolver",
    # Connections
    "ConnectionLifecycle",
    "ConnectionStringManager",
    "EngineCache",
    "HandleState",
    "default_engine_cache",
    "environment_loader",
]
