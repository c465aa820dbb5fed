"""Devices command implementation.

Resolves a directory to the device nodes that store it.
"""

import json
from typing import Annotated

import typer

from devprobe.cli.types import OutputFormat, get_resolver
from devprobe.core.errors import ProbeError
from devprobe.utils.formatting import console, create_device_table, print_error


def devices(
    ctx: typer.Context,
    path: Annotated[
        str,
        typer.Argument(help="Directory or file whose devices are wanted."),
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
) -> None:
    """Show the device nodes holding a directory.

    Tries the mount table and storage pools first and falls back to a
    scan of the device directory.

    Examples:
        devprobe devices /boot/grub
        devprobe devices / --format json
    """
    resolver = get_resolver(ctx)
    try:
        found = resolver.resolve_root_devices(path)
    except ProbeError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if found is None:
        print_error(f"cannot find a device for {path} (is /dev mounted?)")
        raise typer.Exit(code=1)

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps({"path": path, "devices": found}))
        return

    table = create_device_table(title=f"Devices for {path}")
    for index, device in enumerate(found, start=1):
        table.add_row(str(index), device)
    console.print(table)
