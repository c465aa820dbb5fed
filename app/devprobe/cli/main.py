"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler

from devprobe import __version__
from devprobe.cli.commands import check, config, devices, find, lvm, pool, relpath
from devprobe.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="devprobe",
    help="Resolve the storage devices behind a filesystem path.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"devprobe version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route devprobe log records to stderr through Rich.

    Args:
        verbose: Log at DEBUG instead of WARNING.
    """
    logger = logging.getLogger("devprobe")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(console=err_console, show_path=False, show_time=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Configuration file (default: ~/.config/devprobe/config.toml).",
        ),
    ] = None,
) -> None:
    """devprobe - Resolve the storage devices behind a filesystem path.

    Finds the block devices holding a directory, including pool and
    volume group members, and the directory's path inside its filesystem.
    """
    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path
    configure_logging(verbose)


# Register commands
app.command(name="devices")(devices.devices)
app.command(name="relpath")(relpath.relpath)
app.command(name="find-device")(find.find_device)
app.command(name="pool")(pool.pool_members)
app.command(name="lvm")(lvm.physical_volumes)
app.command(name="check")(check.check_device)
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
