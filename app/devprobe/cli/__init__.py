"""CLI package for devprobe.

This package contains the Typer application and all subcommands.
"""

from devprobe.cli.main import app

__all__ = ["app"]
