"""Config command implementation.

Shows and initializes the devprobe configuration file.
"""

from pathlib import Path
from typing import Annotated

import typer

from devprobe.cli.types import get_config
from devprobe.core.config import ConfigError, ProbeConfig, save_config
from devprobe.core.paths import get_config_path
from devprobe.utils.formatting import console, create_detail_table, print_error, print_success, print_warning

app = typer.Typer(
    help="Show or initialize the configuration.",
    no_args_is_help=True,
)


def _active_path(ctx: typer.Context) -> Path:
    obj = ctx.obj or {}
    return obj.get("config_path") or get_config_path()


@app.command()
def show(ctx: typer.Context) -> None:
    """Show the effective configuration."""
    config = get_config(ctx)
    path = _active_path(ctx)

    source = str(path) if path.exists() else "defaults"
    table = create_detail_table(title=f"Configuration ({source})")
    for key, value in config.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def init(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing configuration file."),
    ] = False,
) -> None:
    """Write a configuration file with default settings."""
    path = _active_path(ctx)
    if path.exists() and not force:
        print_warning(f"Config already exists: {path} (use --force to overwrite)")
        raise typer.Exit(code=1)

    try:
        saved = save_config(ProbeConfig(), path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Config written to {saved}")
