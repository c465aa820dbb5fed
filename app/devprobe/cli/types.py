"""Shared types and utilities for CLI commands.

This module provides common enums and helper functions used across
multiple CLI command modules to avoid code duplication.
"""

from enum import Enum
from pathlib import Path

import typer

from devprobe.core.config import ConfigError, ProbeConfig, load_config_or_default
from devprobe.probe.driver import RootResolver
from devprobe.utils.formatting import print_error


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def get_config(ctx: typer.Context) -> ProbeConfig:
    """Load the configuration selected by the global --config option.

    Args:
        ctx: Typer context carrying the global options.

    Returns:
        Loaded or default ProbeConfig.

    Raises:
        typer.Exit: If the configuration file is invalid.
    """
    obj = ctx.obj or {}
    config_path: Path | None = obj.get("config_path")
    try:
        return load_config_or_default(config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def get_resolver(ctx: typer.Context) -> RootResolver:
    """Build a RootResolver from the active configuration.

    Args:
        ctx: Typer context carrying the global options.

    Returns:
        Configured RootResolver.
    """
    return RootResolver(get_config(ctx))
