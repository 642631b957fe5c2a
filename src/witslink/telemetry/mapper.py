"""Raw channel → named field mapping.

Rewrites a :class:`RawChannelMap` into a :class:`TelemetryFrame` using a
:class:`~witslink.models.mapping.MappingTable`.  Each matched entry writes
its value under the camelCase field name; entries found by ``witsId`` that
also declare a ``channel`` are additionally written under that channel key,
so consumers may read either the semantic name or the raw channel.

Raw channels are always carried over, mapped or not.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from witslink.telemetry.frames import TelemetryFrame

if TYPE_CHECKING:
    from witslink.models.mapping import MappingEntry, MappingTable
    from witslink.telemetry.frames import RawChannelMap

logger = logging.getLogger(__name__)

_WORD_BREAK = re.compile(r"\s+(.)")


def to_camel_case(name: str) -> str:
    """``"Bit Depth"`` → ``"bitDepth"``; ``"WOB"`` → ``"wOB"``."""
    if not name:
        return name
    head, tail = name[0].lower(), name[1:]
    return head + _WORD_BREAK.sub(lambda m: m.group(1).upper(), tail)


class ChannelMapper:
    """Applies a mapping table to raw channel maps.

    Holds the current table so the client can swap it between records
    without rebuilding the pipeline.
    """

    def __init__(self, table: MappingTable | None = None) -> None:
        self._table = table

    @property
    def table(self) -> MappingTable | None:
        return self._table

    def update(self, table: MappingTable | None) -> None:
        self._table = table

    def apply(self, raw: RawChannelMap) -> TelemetryFrame:
        return apply_mappings(raw, self._table)


def apply_mappings(raw: RawChannelMap, table: MappingTable | None) -> TelemetryFrame:
    """Return a fresh, read-only frame for *raw*, with named fields added from *table*.

    Without a table the frame carries the raw channels unchanged.  Entries
    whose channel is absent from *raw* are skipped.
    """
    values = dict(raw.channels)
    if table is not None:
        for entry in table.entries():
            _apply_entry(entry, raw, values)
    return TelemetryFrame(
        values=values,
        source=raw.source,
        timestamp=raw.timestamp,
        attributes=dict(raw.attributes),
    )


def _apply_entry(entry: MappingEntry, raw: RawChannelMap, values: dict) -> None:
    channels = raw.channels
    if entry.wits_id and entry.wits_id in channels:
        value = channels[entry.wits_id]
        values[to_camel_case(entry.name)] = value
        if entry.channel:
            values[entry.channel] = value
    elif entry.channel and entry.channel in channels:
        values[to_camel_case(entry.name)] = channels[entry.channel]
