"""``witslink mappings``: inspect a channel mapping file."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from witslink.cli._options import global_options
from witslink.models.mapping import MappingTable

if TYPE_CHECKING:
    from witslink.cli.main import AppContext


@click.command("mappings")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@global_options
def mappings_cmd(app_ctx: AppContext, path: Path) -> None:
    """Validate and print a JSON mapping table."""
    table = MappingTable.load(path)
    formatter = app_ctx.formatter
    if formatter.is_json:
        formatter.output(table, command="mappings")
    else:
        formatter.rich.mapping_table(table)
