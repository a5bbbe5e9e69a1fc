"""
Configuration models and loader.
"""

import logging
import yaml
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from diskstash.exceptions import ConfigError
from diskstash.utils import get_default_cache_dir

CONFIG_VERSION = "1.0"


class CacheSettings(BaseModel):
    """Cache store configuration settings."""

    cache_dir: Path = Field(default_factory=get_default_cache_dir)
    size_limit: int = Field(default=10_000_000, gt=0)  # Maximum bytes on disk
    count_limit: Optional[int] = Field(default=None, ge=1)  # None = unbounded
    default_ttl: Optional[int] = None  # Seconds; None or <= 0 = never expire
    scan_in_background: bool = True
    log_level: str = "INFO"

    @field_validator("cache_dir")
    @classmethod
    def expand_cache_dir(cls, value: Path) -> Path:
        """Expand ~ in configured paths."""
        return value.expanduser()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Accept any standard logging level name, case-insensitively."""
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


class DiskStashConfig(BaseModel):
    """Main configuration model."""

    version: Literal["1.0"]
    cache: CacheSettings = Field(default_factory=CacheSettings)

    @classmethod
    def from_yaml(cls, path: str) -> "DiskStashConfig":
        """
        Load and validate configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            DiskStashConfig instance

        Raises:
            ConfigError: If file not found or invalid
        """
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing YAML file: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")

        # YAML reads an unquoted 1.0 as a float
        version = data.get("version")
        if version != CONFIG_VERSION and str(version) != CONFIG_VERSION:
            raise ConfigError(f"Invalid version: {version}. Expected {CONFIG_VERSION}")
        data["version"] = CONFIG_VERSION

        if data.get("cache") is None:
            data.pop("cache", None)

        try:
            return cls(**data)
        except Exception as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


def load_config(config_path: str) -> DiskStashConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        DiskStashConfig instance
    """
    return DiskStashConfig.from_yaml(config_path)
