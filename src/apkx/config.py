"""Configuration management for apkx using Pydantic models."""

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

CONFIG_FILE_NAME = ".apkx.json"


class LogLevel(str, Enum):
    """Logging levels."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"


class AdbConfig(BaseModel):
    """adb configuration section."""
    path: str | None = None
    timeout_seconds: int = Field(alias="timeoutSeconds", default=120)

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v):
        if v < 1:
            raise ValueError("timeout_seconds must be >= 1")
        return v

    model_config = ConfigDict(populate_by_name=True)


class InstallConfig(BaseModel):
    """Install configuration section."""
    allow_downgrade: bool = Field(alias="allowDowngrade", default=False)
    modules: list[str] | None = None

    @field_validator("modules")
    @classmethod
    def validate_modules(cls, v):
        if v is not None and not v:
            raise ValueError("modules must not be empty when set")
        return v

    model_config = ConfigDict(populate_by_name=True)


class ValidationConfig(BaseModel):
    """Validation configuration section."""
    disabled_rules: list[str] = Field(alias="disabledRules", default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class LoggingConfig(BaseModel):
    """Logging configuration section."""
    level: LogLevel = LogLevel.WARN

    model_config = ConfigDict(use_enum_values=True)


class ApkxConfig(BaseModel):
    """Complete apkx configuration model."""
    adb: AdbConfig = Field(default_factory=AdbConfig)
    install: InstallConfig = Field(default_factory=InstallConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(extra="forbid")


def load_config(config_path: str | Path | None = None) -> ApkxConfig:
    """Load configuration from file with fallback to defaults.

    Args:
        config_path: Optional path to configuration file. If None, searches
                    current directory and parents for .apkx.json

    Returns:
        ApkxConfig: Loaded and validated configuration

    Raises:
        ValueError: If configuration is invalid
    """
    if config_path is None:
        config_path = find_config_file()
    else:
        config_path = Path(config_path)

    if config_path and config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = json.load(f)
            return ApkxConfig(**config_data)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file {config_path}: {e}")
        except Exception as e:
            raise ValueError(f"Failed to load config from {config_path}: {e}")
    return ApkxConfig()


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find .apkx.json configuration file by searching up directory tree.

    Args:
        start_dir: Directory to start search from (default: current directory)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = Path(start_dir).resolve()

    while True:
        config_file = current / CONFIG_FILE_NAME
        if config_file.exists():
            return config_file

        parent = current.parent
        if parent == current:  # Reached root directory
            break
        current = parent

    return None
