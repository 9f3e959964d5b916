"""
Configuration system for dsync using Pydantic.
"""

import os
from pathlib import Path
from typing import Any, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .database.connection import ConnectionConfig
from .exceptions import ConfigurationError
from .schema.specs import TableSpec


class RetryConfig(BaseModel):
    """Deadlock retry policy."""

    max_retries: int = Field(3, ge=0, description="Retries after a deadlock")
    retry_delay: float = Field(0.1, ge=0, description="Delay between retries in seconds")


class ReadinessConfig(BaseModel):
    """Start-up readiness probe settings."""

    interval: float = Field(1.0, gt=0, description="Delay between connection attempts")


class ExportConfig(BaseModel):
    """Database dump settings."""

    command: str = Field("mysqldump", description="Dump utility executable")
    extra_args: List[str] = Field(
        default_factory=list, description="Extra arguments passed to the dump utility"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


class DSyncConfig(BaseSettings):
    """Main dsync configuration."""

    database: ConnectionConfig = Field(..., description="Connection details")
    tables: List[TableSpec] = Field(
        default_factory=list, description="Tables to keep in sync"
    )
    dry_run: bool = Field(False, description="Render DDL without executing it")

    retry: RetryConfig = Field(default_factory=RetryConfig, description="Retry policy")
    readiness: ReadinessConfig = Field(
        default_factory=ReadinessConfig, description="Readiness probe settings"
    )
    export: ExportConfig = Field(default_factory=ExportConfig, description="Export settings")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DSYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "DSyncConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            # Expand environment variables in the data
            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def get_table(self, name: str) -> TableSpec:
        """Get a table spec by name."""
        for table in self.tables:
            if table.name == name:
                return table
        raise ConfigurationError(f"Table '{name}' not found in configuration")

    def validate_config(self) -> None:
        """Validate the entire configuration for consistency."""
        seen = set()
        for table in self.tables:
            if table.name in seen:
                raise ConfigurationError(f"Table '{table.name}' is declared more than once")
            seen.add(table.name)

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                self.model_dump(mode="json", exclude_none=True),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )
