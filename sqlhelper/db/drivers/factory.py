"""Driver binding factory and connection-string parsing."""

from typing import Dict, List, Type

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError as SQLAlchemyArgumentError

from sqlhelper.db.drivers.base import DriverBinding
from sqlhelper.db.drivers.mssql import MSSQLBinding
from sqlhelper.db.drivers.sqlite import SQLiteBinding
from sqlhelper.exceptions import ConfigurationError


def parse_connection_string(connection_string: str) -> URL:
    """Parse a connection string into a SQLAlchemy URL.

    SQLAlchemy URLs (``dialect+driver://...``) are used as-is. ODBC
    strings (``Server=...;Database=...;``) are passed through to pyodbc.

    Raises:
        ConfigurationError: If the string is blank or cannot be parsed.
    """
    if not connection_string or not connection_string.strip():
        raise ConfigurationError("You must specify a connection string")

    value = connection_string.strip()
    if "://" in value:
        try:
            return make_url(value)
        except SQLAlchemyArgumentError as e:
            raise ConfigurationError(f"Invalid connection string: {e}") from e

    if "=" in value:
        return URL.create("mssql+pyodbc", query={"odbc_connect": value})

    raise ConfigurationError("Connection string is neither a database URL nor an ODBC connection string")


class DriverFactory:
    """Factory for creating driver bindings."""

    _bindings: Dict[str, Type[DriverBinding]] = {
        "sqlite": SQLiteBinding,
        "mssql": MSSQLBinding,
    }

    @classmethod
    def create_binding(cls, connection_string: str) -> DriverBinding:
        """Create the binding for a connection string.

        Raises:
            ConfigurationError: If the backend is not supported.
        """
        url = parse_connection_string(connection_string)
        backend = url.get_backend_name()
        binding_class = cls._bindings.get(backend)
        if not binding_class:
            raise ConfigurationError(
                f"Unsupported database backend: {backend}. "
                f"Supported backends: {cls.get_supported_backends()}"
            )
        return binding_class(url)

    @classmethod
    def register_binding(cls, backend: str, binding_class: Type[DriverBinding]) -> None:
        """Register a custom driver binding."""
        cls._bindings[backend] = binding_class

    @classmethod
    def get_supported_backends(cls) -> List[str]:
        return list(cls._bindings.keys())
