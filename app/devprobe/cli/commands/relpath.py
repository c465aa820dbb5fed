"""Relpath command implementation.

Shows where a path lives inside the filesystem that contains it.
"""

import json
from typing import Annotated

import typer

from devprobe.cli.types import OutputFormat, get_resolver
from devprobe.core.errors import ProbeError
from devprobe.utils.formatting import console, create_detail_table, print_error


def relpath(
    ctx: typer.Context,
    path: Annotated[
        str,
        typer.Argument(help="Existing path to locate."),
    ],
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format: table or json.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
    plain: Annotated[
        bool,
        typer.Option(
            "--plain",
            "-p",
            help="Print only the relative path.",
        ),
    ] = False,
) -> None:
    """Show the path of PATH relative to its filesystem root.

    The relative path never ends with '/'; an empty value means PATH is
    the root of its filesystem.
    """
    resolver = get_resolver(ctx)
    try:
        boundary = resolver.walker.split(path)
    except ProbeError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if plain:
        typer.echo(boundary.relative_path)
        return

    if output_format == OutputFormat.JSON:
        data = {
            "path": path,
            "device": str(boundary.device_id),
            "mount_point": boundary.mount_point,
            "relative_path": boundary.relative_path,
            "is_mount_root": boundary.is_mount_root,
        }
        console.print_json(json.dumps(data))
        return

    table = create_detail_table(title=f"Mount boundary for {path}")
    table.add_row("Device", str(boundary.device_id))
    table.add_row("Mount point", boundary.mount_point)
    if boundary.is_mount_root:
        table.add_row("Relative path", "[muted](filesystem root)[/]")
    else:
        table.add_row("Relative path", boundary.relative_path)
    console.print(table)
