"""Pool command implementation.

Lists the member devices of a storage pool.
"""

import json
from typing import Annotated

import typer

from devprobe.cli.types import OutputFormat, get_resolver
from devprobe.core.errors import ProbeError
from devprobe.utils.formatting import console, create_device_table, print_error, print_warning


def pool_members(
    ctx: typer.Context,
    pool: Annotated[
        str,
        typer.Argument(help="Pool name."),
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
    """Show the online member devices of POOL."""
    backend = get_resolver(ctx).pool_backend
    if not backend.is_available():
        print_error("zpool is not available on this system.")
        raise typer.Exit(code=1)

    try:
        members = backend.resolve_pool(pool)
    except ProbeError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if members is None:
        print_error(f"cannot query pool {pool}")
        raise typer.Exit(code=1)

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps({"pool": pool, "devices": members}))
        return

    if not members:
        print_warning(f"pool {pool} has no online devices")
        return

    table = create_device_table(title=f"Pool {pool}")
    for index, device in enumerate(members, start=1):
        table.add_row(str(index), device)
    console.print(table)
