"""Configuration management for SQLHelper."""

from sqlhelper.config.models import (
    DEFAULT_BULK_BATCH_SIZE,
    DEFAULT_COMMAND_TIMEOUT,
    BulkCopySettings,
    EnvironmentSettings,
    SQLHelperConfig,
    TimeoutSettings,
)
from sqlhelper.config.parser import (
    ConfigParser,
    create_sample_config,
    get_config,
    get_settings,
    set_config,
    validate_config_file,
)

__all__ = [
    # Models
    "DEFAULT_BULK_BATCH_SIZE",
    "DEFAULT_COMMAND_TIMEOUT",
    "BulkCopySettings",
    "EnvironmentSettings",
    "SQLHelperConfig",
    "TimeoutSettings",
    # Parser
    "ConfigParser",
    "create_sample_config",
    "get_config",
    "get_settings",
    "set_config",
    "validate_config_file",
]
