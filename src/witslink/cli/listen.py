"""``witslink listen``: stream live frames from a WITS / Noralis source."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import click

from witslink._internal.async_utils import run_async
from witslink.cli._options import connection_options, global_options, protocol_options
from witslink.client import WitsClient
from witslink.models.config import WellInfo
from witslink.models.mapping import MappingTable

if TYPE_CHECKING:
    from witslink.cli.main import AppContext
    from witslink.models.config import ConnectionOptions
    from witslink.output.formatter import OutputFormatter
    from witslink.telemetry.frames import TelemetryFrame

logger = logging.getLogger(__name__)


@click.command("listen")
@click.option("--count", type=int, default=None, help="Stop after N frames")
@click.option("--duration", type=float, default=None, help="Stop after S seconds")
@click.option("--well-id", default=None, help="Well id stamped on every frame")
@click.option("--well-name", default=None, help="Well name stamped on every frame")
@click.option("--rig-name", default=None, help="Rig name stamped on every frame")
@protocol_options
@connection_options
@global_options
def listen_cmd(
    app_ctx: AppContext,
    overrides: dict[str, Any],
    mappings_file: str | None,
    count: int | None,
    duration: float | None,
    well_id: str | None,
    well_name: str | None,
    rig_name: str | None,
) -> None:
    """Connect to a source and print each decoded frame."""
    settings = app_ctx.settings
    if well_id or well_name or rig_name:
        overrides["well"] = WellInfo(
            well_id=well_id or settings.well_id,
            well_name=well_name or settings.well_name,
            rig_name=rig_name or settings.rig_name,
        )
    options = settings.connection_options(**overrides)

    path = mappings_file or settings.mappings_file
    mappings = MappingTable.load(path) if path else None

    received = run_async(
        listen(app_ctx.formatter, options, mappings, count=count, duration=duration)
    )
    logger.info("Received %d frames", received)


async def listen(
    formatter: OutputFormatter,
    options: ConnectionOptions,
    mappings: MappingTable | None = None,
    *,
    count: int | None = None,
    duration: float | None = None,
) -> int:
    """Stream frames to *formatter* until *count* frames or *duration* seconds.

    Returns the number of frames received.  Without either limit this runs
    until cancelled (Ctrl-C).
    """
    done = asyncio.Event()
    received = 0

    def on_frame(frame: TelemetryFrame) -> None:
        nonlocal received
        if done.is_set():
            return
        received += 1
        formatter.frame(frame)
        if count is not None and received >= count:
            done.set()

    client = WitsClient(options, mappings)
    client.on_data(on_frame)
    client.on_connection_change(formatter.connection)
    client.on_error(formatter.status)

    async with client:
        try:
            await asyncio.wait_for(done.wait(), timeout=duration)
        except TimeoutError:
            logger.debug("Listen duration of %.1f s elapsed", duration)
    return received
