"""Connection-string lookup by key with an override layer."""

import logging
import os
from typing import Callable, Dict, List, Optional

from sqlhelper.config.models import SQLHelperConfig
from sqlhelper.exceptions import ConnectionStringNotFoundError

logger = logging.getLogger(__name__)

ConnectionStringLoader = Callable[[str], Optional[str]]


def environment_loader(prefix: str = "SQLHELPER_CONN_") -> ConnectionStringLoader:
    """Loader reading ``{prefix}{KEY}`` environment variables (key upper-cased)."""

    def load(key: str) -> Optional[str]:
        return os.environ.get(f"{prefix}{key.upper()}")

    return load


class ConnectionStringManager:
    """Resolves connection strings by key.

    Lookup order is override, then the optional loader, then the static
    registry. Instances are built once at startup and passed to whatever
    needs them.
    """

    def __init__(
        self,
        connection_strings: Optional[Dict[str, str]] = None,
        connection_string_loader: Optional[ConnectionStringLoader] = None,
    ) -> None:
        self._registry: Dict[str, str] = dict(connection_strings or {})
        self._overrides: Dict[str, str] = {}
        self.connection_string_loader = connection_string_loader

    @classmethod
    def from_config(
        cls,
        config: SQLHelperConfig,
        loader: Optional[ConnectionStringLoader] = None,
    ) -> "ConnectionStringManager":
        manager = cls(config.connections, loader)
        for key, value in config.overrides.items():
            manager.add_override(key, value)
        return manager

    def set_connection_string(self, key: str, value: str) -> None:
        self._registry[key] = value

    def remove_connection_string(self, key: str) -> None:
        self._registry.pop(key, None)

    def add_override(self, key: str, value: Optional[str]) -> None:
        """Override ``key``. A blank value removes the override."""
        if value is None or not value.strip():
            self._overrides.pop(key, None)
            return
        self._overrides[key] = value

    def is_overridden(self, key: str) -> bool:
        return key in self._overrides

    def get_connection_string(self, key: str) -> str:
        """Resolve ``key``.

        Raises:
            ConnectionStringNotFoundError: If no layer has a value for ``key``.
        """
        if key in self._overrides:
            logger.debug(f"Connection string '{key}' resolved from overrides")
            return self._overrides[key]

        if self.connection_string_loader is not None:
            value = self.connection_string_loader(key)
            if value and value.strip():
                logger.debug(f"Connection string '{key}' resolved from loader")
                return value

        if key in self._registry:
            return self._registry[key]

        raise ConnectionStringNotFoundError(f"Could not find a connection string for '{key}'", key=key)

    def keys(self) -> List[str]:
        """Registry and override keys, registry order first."""
        keys = list(self._registry)
        keys.extend(key for key in self._overrides if key not in self._registry)
        return keys

    def __contains__(self, key: str) -> bool:
        return key in self._overrides or key in self._registry
