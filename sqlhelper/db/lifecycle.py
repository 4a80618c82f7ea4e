"""Connection handle lifecycle and engine caching."""

import logging
import threading
from enum import Enum
from typing import Dict, Optional

from sqlalchemy.engine import Connection, Engine, Transaction
from sqlalchemy.exc import InvalidRequestError

from sqlhelper.db.drivers.base import DriverBinding
from sqlhelper.db.drivers.factory import DriverFactory
from sqlhelper.exceptions import ArgumentError, ConfigurationError, ConnectionFailedError

logger = logging.getLogger(__name__)


class HandleState(str, Enum):
    """States of a connection handle."""
    UNCONSTRUCTED = "unconstructed"
    CLOSED = "closed"
    OPEN = "open"
    RELEASED = "released"


class EngineCache:
    """One SQLAlchemy engine (and so one pool) per connection string."""

    def __init__(self) -> None:
        self._engines: Dict[str, Engine] = {}
        self._lock = threading.Lock()

    def get_engine(self, connection_string: str, binding: DriverBinding) -> Engine:
        with self._lock:
            engine = self._engines.get(connection_string)
            if engine is None:
                engine = binding.create_engine()
                self._engines[connection_string] = engine
                logger.info(f"Created engine for {binding!r}")
            return engine

    def dispose(self, connection_string: str) -> None:
        with self._lock:
            engine = self._engines.pop(connection_string, None)
        if engine is not None:
            engine.dispose()

    def dispose_all(self) -> None:
        """Dispose every cached engine, closing pooled connections."""
        with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
        for engine in engines:
            engine.dispose()

    def __len__(self) -> int:
        return len(self._engines)


default_engine_cache = EngineCache()


class ConnectionLifecycle:
    """Owns the single connection handle behind one façade.

    The handle is built on first :meth:`acquire`, reopened whenever it is
    found closed and closed for good by :meth:`release`.
    """

    def __init__(self, connection_string: Optional[str] = None, engine_cache: Optional[EngineCache] = None) -> None:
        self.connection_string = connection_string
        self.engine_cache = engine_cache or default_engine_cache
        self._binding: Optional[DriverBinding] = None
        self._handle: Optional[Connection] = None
        self._transaction: Optional[Transaction] = None
        self._released = False

    @property
    def binding(self) -> DriverBinding:
        """Driver binding for the connection string, created on first use."""
        if self._binding is None:
            if not self.connection_string:
                raise ConfigurationError("You must specify a connection string")
            self._binding = DriverFactory.create_binding(self.connection_string)
        return self._binding

    @property
    def state(self) -> HandleState:
        if self._released:
            return HandleState.RELEASED
        if self._handle is None:
            return HandleState.UNCONSTRUCTED
        if self._handle.closed or self._handle.invalidated:
            return HandleState.CLOSED
        return HandleState.OPEN

    def acquire(self) -> Connection:
        """Return an open handle, constructing or reopening it as needed.

        Raises:
            ConfigurationError: If no connection string is set or the
                handle was released.
            ConnectionFailedError: If the database cannot be reached.
        """
        if self._released:
            raise ConfigurationError("The connection has been released")

        state = self.state
        if state == HandleState.OPEN:
            return self._handle

        if self._handle is not None and not self._handle.closed:
            # Invalidated but never closed.
            self._handle.close()

        engine = self.engine_cache.get_engine(self.connection_string, self.binding)
        try:
            self._handle = engine.connect()
        except Exception as e:
            raise ConnectionFailedError(f"Failed to open connection: {e}") from e

        self._transaction = None
        action = "Opened" if state == HandleState.UNCONSTRUCTED else "Reopened"
        logger.info(f"{action} connection using {self.binding!r}")
        return self._handle

    def begin_transaction(self) -> Transaction:
        """Begin a caller-owned transaction on the handle.

        Raises:
            ArgumentError: If a transaction is already in progress.
        """
        handle = self.acquire()
        if self.in_explicit_transaction:
            raise ArgumentError("A transaction is already in progress on this connection")
        if handle.in_transaction():
            # Left behind by raw use of the handle; not ours to keep.
            handle.commit()
        try:
            self._transaction = handle.begin()
        except InvalidRequestError as e:
            raise ArgumentError(f"Could not begin a transaction: {e}") from e
        return self._transaction

    @property
    def in_explicit_transaction(self) -> bool:
        return self._transaction is not None and self._transaction.is_active

    def release(self) -> None:
        """Close the handle. Terminal: later :meth:`acquire` calls fail."""
        if self._released:
            return
        self._released = True
        handle, self._handle = self._handle, None
        self._transaction = None
        if handle is not None and not handle.closed:
            handle.close()
            logger.info("Released connection")

    def __repr__(self) -> str:
        return f"ConnectionLifecycle(state={self.state.value})"
