"""Bytes → frames: buffer, parse, stamp, map.

:class:`FramePipeline` is the receive path of :class:`~witslink.client.WitsClient`
without any I/O, so it also serves offline replay of captured streams.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from witslink.telemetry.buffer import RecordBuffer
from witslink.telemetry.mapper import ChannelMapper
from witslink.telemetry.parsers import get_parser

if TYPE_CHECKING:
    from witslink.models.config import ConnectionOptions
    from witslink.models.mapping import MappingTable
    from witslink.telemetry.frames import TelemetryFrame

logger = logging.getLogger(__name__)


class FramePipeline:
    """Frames records from a byte stream and turns each into a :class:`TelemetryFrame`."""

    def __init__(self, options: ConnectionOptions, mappings: MappingTable | None = None) -> None:
        self._buffer = RecordBuffer(options.effective_delimiter, max_residual=options.max_buffer)
        self._parser = get_parser(options.protocol)
        self._mapper = ChannelMapper(mappings)
        self._well = options.well.as_attributes() if options.well is not None else {}

    @property
    def buffer(self) -> RecordBuffer:
        return self._buffer

    @property
    def mappings(self) -> MappingTable | None:
        return self._mapper.table

    def update_mappings(self, mappings: MappingTable | None) -> None:
        self._mapper.update(mappings)

    def reset(self) -> None:
        """Drop any partial record."""
        self._buffer.reset()

    def feed(self, chunk: bytes | str, *, final: bool = False) -> list[TelemetryFrame]:
        """Buffer *chunk* and return the frames for every completed record.

        With *final*, the residual is treated as a complete record too.
        """
        self._buffer.append(chunk)
        frames: list[TelemetryFrame] = []
        for record in self._buffer.drain_records(final=final):
            try:
                frame = self.process(record)
            except Exception:
                logger.warning("Failed to process record %r", record[:80], exc_info=True)
                continue
            if frame is not None:
                frames.append(frame)
        return frames

    def process(self, record: str) -> TelemetryFrame | None:
        """Parse and map one record; ``None`` if it is blank or discarded."""
        if not record.strip():
            return None
        raw = self._parser.parse(record)
        if raw is None:
            return None
        raw.attributes.update(self._well)
        return self._mapper.apply(raw)
