"""CLI commands for devprobe.

This package contains all subcommand implementations.
"""

from devprobe.cli.commands import check, config, devices, find, lvm, pool, relpath

__all__ = ["check", "config", "devices", "find", "lvm", "pool", "relpath"]
