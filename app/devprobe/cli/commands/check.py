"""Check command implementation.

Classifies a device node.
"""

from typing import Annotated

import typer

from devprobe.core.errors import ProbeError
from devprobe.scanner.nodes import check_block_device, check_char_device, is_floppy
from devprobe.utils.formatting import console, create_detail_table, print_error


def check_device(
    device: Annotated[
        str,
        typer.Argument(help="Device node to classify."),
    ],
) -> None:
    """Show whether DEVICE is a block, character or floppy device."""
    try:
        block = check_block_device(device) is not None
        char = check_char_device(device) is not None
    except ProbeError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    table = create_detail_table(title=device)
    table.add_row("Block device", "yes" if block else "no")
    table.add_row("Character device", "yes" if char else "no")
    table.add_row("Floppy", "yes" if is_floppy(device) else "no")
    console.print(table)
