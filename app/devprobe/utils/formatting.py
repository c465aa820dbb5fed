"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

# Semantic styles used in markup across the CLI
DEVPROBE_THEME = Theme(
    {
        "text": "#ffffff",
        "muted": "#b2bec3",
        "header": "bold #69B9A1",
        "border": "#29526d",
        "success": "#03b971",
        "warning": "#f5b332",
        "error": "#f53263",
        "info": "#0ec1c8",
        "device": "bold #69B9A1",
    }
)


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances
console = Console(theme=DEVPROBE_THEME, color_system=_detect_color_system())
err_console = Console(theme=DEVPROBE_THEME, stderr=True, color_system=_detect_color_system())


def create_device_table(title: str = "Devices") -> Table:
    """Create a pre-configured table for displaying device paths.

    Args:
        title: Table title.

    Returns:
        Rich Table with index and device columns.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="header",
        border_style="border",
    )
    table.add_column("#", style="muted", justify="right", width=3)
    table.add_column("Device", style="device", no_wrap=True)
    return table


def create_detail_table(title: str) -> Table:
    """Create a two-column key/value table.

    Args:
        title: Table title.

    Returns:
        Rich Table with property and value columns.
    """
    table = Table(
        title=title,
        show_header=False,
        border_style="border",
    )
    table.add_column("Property", style="muted", no_wrap=True)
    table.add_column("Value", style="text")
    return table


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
