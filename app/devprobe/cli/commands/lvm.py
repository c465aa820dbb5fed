"""LVM command implementation.

Lists the physical volumes behind a logical volume as vgs reports them.
"""

from typing import Annotated

import typer

from devprobe.cli.types import get_resolver
from devprobe.utils.formatting import console, print_error, print_info, print_warning


def physical_volumes(
    ctx: typer.Context,
    device: Annotated[
        str,
        typer.Argument(help="Logical volume, e.g. /dev/mapper/vg-root."),
    ],
) -> None:
    """Show the physical volumes of the volume group holding DEVICE.

    Volumes are printed as vgs produces them.
    """
    backend = get_resolver(ctx).lvm_backend
    if not backend.is_available():
        print_error("vgs is not available on this system.")
        raise typer.Exit(code=1)

    count = backend.pull_physical_volumes(device, lambda pv: console.print(f"[device]{pv}[/]"))
    if count == 0:
        print_warning(f"no physical volumes found for {device}")
        return
    print_info(f"{count} physical volume(s)")
