"""Find-device command implementation.

Scans a device directory for the node carrying a device number.
"""

from typing import Annotated

import typer

from devprobe.cli.types import get_config
from devprobe.models.device import DeviceId
from devprobe.scanner.devtree import DeviceTreeScanner
from devprobe.utils.formatting import console, print_error


def find_device(
    ctx: typer.Context,
    device: Annotated[
        str,
        typer.Argument(help="Device number as MAJOR:MINOR, e.g. 8:1."),
    ],
    directory: Annotated[
        str | None,
        typer.Option(
            "--dir",
            "-d",
            help="Directory to scan (default: configured device directory).",
        ),
    ] = None,
    sort_entries: Annotated[
        bool,
        typer.Option(
            "--sorted",
            help="Visit directory entries in sorted order.",
        ),
    ] = False,
) -> None:
    """Find the device node for a MAJOR:MINOR device number."""
    try:
        device_id = DeviceId.parse(device)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    config = get_config(ctx)
    scanner = DeviceTreeScanner(
        dev_dir=config.dev_dir,
        sort_entries=sort_entries or config.sort_entries,
    )
    node = scanner.find_node(device_id, directory)
    if node is None:
        print_error(f"no device node for {device_id} under {directory or config.dev_dir}")
        raise typer.Exit(code=1)

    console.print(f"[device]{node.path}[/] [muted]({node.kind.value})[/]")
