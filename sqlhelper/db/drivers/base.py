"""Driver binding capability interface."""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine, URL

from sqlhelper.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class DriverBinding(ABC):
    """What the data-access core needs from a concrete driver.

    A binding knows how to build an engine for its URL, how to bound a
    single command by a timeout, how to recognise a timeout in a driver
    error and how to probe a table's shape.
    """

    name = "generic"
    supports_procedures = True

    def __init__(self, url: URL) -> None:
        self.url = url

    @abstractmethod
    def get_driver_name(self) -> str:
        """Get the DB-API driver name for this binding."""
        pass

    def create_engine(self, login_timeout: Optional[int] = None, **overrides: Any) -> Engine:
        """Create a SQLAlchemy engine for this binding's URL.

        Raises:
            ConfigurationError: If engine creation fails.
        """
        engine_args: Dict[str, Any] = {
            'pool_pre_ping': True,
            'echo': False,
        }
        engine_args.update(self._get_engine_options())
        if login_timeout is not None:
            connect_args = dict(engine_args.get('connect_args', {}))
            connect_args.update(self._get_login_timeout_args(login_timeout))
            engine_args['connect_args'] = connect_args
        engine_args.update(overrides)

        try:
            return create_engine(self.url, **engine_args)
        except Exception as e:
            raise ConfigurationError(f"Failed to create database engine for {self.name}: {e}") from e

    def _get_engine_options(self) -> Dict[str, Any]:
        """Get driver-specific engine options."""
        return {}

    def _get_login_timeout_args(self, timeout: int) -> Dict[str, Any]:
        """Get driver connect arguments bounding how long opening may take."""
        return {}

    @contextmanager
    def command_timeout(self, connection: Connection, timeout: int) -> Generator[None, None, None]:
        """Bound everything run inside the block by ``timeout`` seconds.

        A timeout of 0 means no limit. The base binding cannot enforce a
        limit and only records that.
        """
        if timeout:
            logger.debug(f"{self.name} binding does not enforce command timeouts ({timeout}s requested)")
        yield

    def is_timeout(self, error: BaseException) -> bool:
        """Return True when ``error`` reports an exceeded command timeout."""
        return False

    def schema_probe_sql(self, table: str) -> str:
        """SQL whose result description is the table's column shape."""
        return f"SELECT TOP 0 * FROM {table}"

    @staticmethod
    def driver_error(error: BaseException) -> BaseException:
        """Unwrap a SQLAlchemy DBAPIError to the driver's own exception."""
        return getattr(error, 'orig', None) or error

    @staticmethod
    def dbapi_connection(connection: Connection) -> Any:
        """The raw DB-API connection behind a SQLAlchemy connection."""
        return connection.connection.dbapi_connection

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.url.render_as_string(hide_password=True)})"
