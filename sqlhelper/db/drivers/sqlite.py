"""SQLite driver binding."""

import sqlite3
import time
from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy.engine import Connection
from sqlalchemy.pool import StaticPool

from sqlhelper.db.drivers.base import DriverBinding

# VM instructions between deadline checks.
PROGRESS_INTERVAL = 1000


class SQLiteBinding(DriverBinding):
    """SQLite driver binding.

    Command timeouts are enforced with a progress handler that interrupts
    the running statement once the deadline has passed.
    """

    name = "sqlite"
    supports_procedures = False

    def get_driver_name(self) -> str:
        return "sqlite3"

    @property
    def is_memory(self) -> bool:
        return self.url.database in (None, "", ":memory:")

    def _get_engine_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            'connect_args': {
                'check_same_thread': False,  # handles may be used from worker threads
            }
        }
        if self.is_memory:
            options['poolclass'] = StaticPool
        return options

    def _get_login_timeout_args(self, timeout: int) -> Dict[str, Any]:
        return {'timeout': timeout}

    @contextmanager
    def command_timeout(self, connection: Connection, timeout: int) -> Generator[None, None, None]:
        if not timeout:
            yield
            return

        dbapi_connection = self.dbapi_connection(connection)
        deadline = time.monotonic() + timeout

        def interrupt_after_deadline() -> int:
            return 1 if time.monotonic() > deadline else 0

        dbapi_connection.set_progress_handler(interrupt_after_deadline, PROGRESS_INTERVAL)
        try:
            yield
        finally:
            dbapi_connection.set_progress_handler(None, PROGRESS_INTERVAL)

    def is_timeout(self, error: BaseException) -> bool:
        orig = self.driver_error(error)
        return isinstance(orig, sqlite3.OperationalError) and "interrupted" in str(orig)

    def schema_probe_sql(self, table: str) -> str:
        return f"SELECT * FROM {table} LIMIT 0"
