"""SQL Server driver binding (pyodbc)."""

from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy.engine import Connection

from sqlhelper.db.drivers.base import DriverBinding

# ODBC SQLSTATEs for "timeout expired" and "connection timeout expired".
TIMEOUT_SQLSTATES = {"HYT00", "HYT01"}


class MSSQLBinding(DriverBinding):
    """SQL Server driver binding.

    The pyodbc connection ``timeout`` attribute is the per-statement
    query timeout; bulk copy uses pyodbc's ``fast_executemany``.
    """

    name = "mssql"
    supports_procedures = True

    def get_driver_name(self) -> str:
        return "pyodbc"

    def _get_engine_options(self) -> Dict[str, Any]:
        return {
            'fast_executemany': True,
            'pool_recycle': 3600,
        }

    def _get_login_timeout_args(self, timeout: int) -> Dict[str, Any]:
        return {'timeout': timeout}

    @contextmanager
    def command_timeout(self, connection: Connection, timeout: int) -> Generator[None, None, None]:
        dbapi_connection = self.dbapi_connection(connection)
        previous = getattr(dbapi_connection, 'timeout', 0)
        dbapi_connection.timeout = timeout
        try:
            yield
        finally:
            dbapi_connection.timeout = previous

    def is_timeout(self, error: BaseException) -> bool:
        orig = self.driver_error(error)
        args = getattr(orig, 'args', ())
        return bool(args) and str(args[0]) in TIMEOUT_SQLSTATES
