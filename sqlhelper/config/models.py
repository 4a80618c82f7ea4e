"""Pydantic models for SQLHelper configuration."""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_COMMAND_TIMEOUT = 30
DEFAULT_BULK_BATCH_SIZE = 250


class TimeoutSettings(BaseModel):
    """Command timeout settings.

    ``global_override`` wins over every per-instance and per-call value.
    It is meant to be set once at startup (for example by a test harness)
    and read-only afterwards.
    """

    model_config = ConfigDict(frozen=True)

    default_timeout: int = Field(default=DEFAULT_COMMAND_TIMEOUT, ge=0, description="Per-call default in seconds")
    global_override: Optional[int] = Field(default=None, ge=0, description="Process-wide timeout override in seconds")


class BulkCopySettings(BaseModel):
    """Bulk copy settings."""

    model_config = ConfigDict(frozen=True)

    batch_size: int = Field(default=DEFAULT_BULK_BATCH_SIZE, ge=1, description="Rows sent per bulk copy batch")


class SQLHelperConfig(BaseModel):
    """Main configuration model for SQLHelper."""

    connections: Dict[str, str] = Field(default_factory=dict)
    overrides: Dict[str, str] = Field(default_factory=dict)
    default_connection: Optional[str] = None
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)
    bulk_copy: BulkCopySettings = Field(default_factory=BulkCopySettings)

    @field_validator('connections')
    def validate_connections(cls, v):
        """Reject blank connection strings."""
        for key, value in v.items():
            if not value or not value.strip():
                raise ValueError(f"Connection string for '{key}' must not be empty")
        return v

    @model_validator(mode='after')
    def validate_default_connection(self):
        """Ensure default_connection is a known key."""
        known = set(self.connections) | set(self.overrides)
        if self.default_connection and self.default_connection not in known:
            raise ValueError(f"default_connection '{self.default_connection}' not found in connections")
        return self

    @model_validator(mode='after')
    def set_default_connection(self):
        """Use the first connection as the default when none is named."""
        if not self.default_connection and self.connections:
            self.default_connection = next(iter(self.connections))
        return self


class EnvironmentSettings(BaseSettings):
    """Environment-specific settings."""

    model_config = SettingsConfigDict(env_prefix="SQLHELPER_", case_sensitive=False)

    log_level: str = Field(default="INFO")
    config_file: Optional[str] = Field(default=None)
    global_timeout_override: Optional[int] = Field(default=None, ge=0)
    connection_string_prefix: str = Field(default="SQLHELPER_CONN_")
