"""Driver bindings for the supported databases."""

from sqlhelper.db.drivers.base import DriverBinding
from sqlhelper.db.drivers.factory import DriverFactory, parse_connection_string
from sqlhelper.db.drivers.mssql import MSSQLBinding
from sqlhelper.db.drivers.sqlite import SQLiteBinding

__all__ = [
    "DriverBinding",
    "DriverFactory",
    "MSSQLBinding",
    "SQLiteBinding",
    "parse_connection_string",
]
