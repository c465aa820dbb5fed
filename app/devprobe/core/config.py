"""Probe configuration and settings.

This module provides the configuration model and I/O functions that
control where devices are searched for and which inventory commands
are used.

Configuration is stored in ~/.config/devprobe/config.toml
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from devprobe.core.paths import get_config_path

logger = logging.getLogger(__name__)


class ProbeConfig(BaseModel):
    """Configuration for device probing.

    Attributes:
        dev_dir: Device directory searched by the tree scanner.
        mapper_dir: Friendly alias directory for device-mapper nodes.
        mountinfo_path: Live mount table in mountinfo format.
        sysfs_dir: Root of sysfs, used for device-mapper UUID lookups.
        zpool_command: Pool status command.
        vgs_command: Volume group listing command.
        prefer_structured: Try structured (JSON) pool queries before text parsing.
        sort_entries: Sort directory entries for deterministic scans.
        command_timeout_seconds: Time allowed for inventory commands.
    """

    model_config = ConfigDict(extra="forbid")

    dev_dir: Annotated[
        str,
        Field(description="Device directory searched by the tree scanner"),
    ] = "/dev"
    mapper_dir: Annotated[
        str,
        Field(description="Device-mapper alias directory"),
    ] = "/dev/mapper"
    mountinfo_path: Annotated[
        str,
        Field(description="Live mount table in mountinfo format"),
    ] = "/proc/self/mountinfo"
    sysfs_dir: Annotated[
        str,
        Field(description="Root of the sysfs tree"),
    ] = "/sys"
    zpool_command: Annotated[
        str,
        Field(min_length=1, description="Pool status command"),
    ] = "zpool"
    vgs_command: Annotated[
        str,
        Field(min_length=1, description="Volume group listing command"),
    ] = "vgs"
    prefer_structured: Annotated[
        bool,
        Field(description="Try structured pool queries before text parsing"),
    ] = True
    sort_entries: Annotated[
        bool,
        Field(description="Sort directory entries for deterministic scans"),
    ] = False
    command_timeout_seconds: Annotated[
        int,
        Field(ge=1, le=600, description="Timeout in seconds (1-600)"),
    ] = 60

    @field_validator("dev_dir", "mapper_dir", "mountinfo_path", "sysfs_dir")
    @classmethod
    def validate_absolute(cls, v: str) -> str:
        """Require absolute paths for all directory settings."""
        if not v.startswith("/"):
            msg = f"path must be absolute, got {v!r}"
            raise ValueError(msg)
        return v


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the config file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> ProbeConfig:
    """Load probe configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses default config path.

    Returns:
        Validated ProbeConfig object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return ProbeConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> ProbeConfig:
    """Load configuration, falling back to defaults when no file exists.

    An explicitly given path must exist; only the default location may
    be missing.

    Args:
        path: Optional explicit config file.

    Returns:
        Loaded or default ProbeConfig.

    Raises:
        ConfigError: If the file exists but is invalid, or an explicit
            path does not exist.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        if path is not None:
            raise
        logger.debug("No config file, using defaults")
        return ProbeConfig()


def save_config(config: ProbeConfig, path: Path | None = None) -> Path:
    """Save probe configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The ProbeConfig object to save.
        path: Path to save the config. If None, uses default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(config.model_dump(), f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path
