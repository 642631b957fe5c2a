"""``witslink parse``: decode a captured stream offline."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from witslink.cli._options import global_options, protocol_options
from witslink.models.config import ConnectionOptions
from witslink.models.mapping import MappingTable
from witslink.telemetry.pipeline import FramePipeline

if TYPE_CHECKING:
    from witslink.cli.main import AppContext
    from witslink.telemetry.frames import TelemetryFrame


@click.command("parse")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@protocol_options
@global_options
def parse_cmd(
    app_ctx: AppContext,
    path: Path,
    protocol: str | None,
    delimiter: str | None,
    mappings_file: str | None,
) -> None:
    """Run a raw capture file through framing, parsing, and mapping."""
    settings = app_ctx.settings
    options = ConnectionOptions(
        protocol=protocol or settings.protocol,
        delimiter=delimiter if delimiter is not None else settings.delimiter,
    )
    mapping_path = mappings_file or settings.mappings_file
    mappings = MappingTable.load(mapping_path) if mapping_path else None

    frames = parse_capture(path.read_bytes(), options, mappings)

    formatter = app_ctx.formatter
    if formatter.is_json:
        formatter.output(frames, command="parse")
    else:
        formatter.rich.frame_summary(frames)


def parse_capture(
    data: bytes,
    options: ConnectionOptions,
    mappings: MappingTable | None = None,
) -> list[TelemetryFrame]:
    """Decode a whole capture; a trailing record without delimiter is kept."""
    return FramePipeline(options, mappings).feed(data, final=True)
