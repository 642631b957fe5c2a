"""Record framing, parsing, mapping, and subscriber dispatch."""

from __future__ import annotations

from witslink.telemetry.buffer import RecordBuffer
from witslink.telemetry.dispatch import CallbackRegistry, EventDispatch
from witslink.telemetry.frames import RawChannelMap, TelemetryFrame
from witslink.telemetry.mapper import ChannelMapper, apply_mappings, to_camel_case
from witslink.telemetry.parsers import (
    NoralisParser,
    RecordParser,
    Wits0Parser,
    Wits1Parser,
    get_parser,
)
from witslink.telemetry.pipeline import FramePipeline

__all__ = [
    "CallbackRegistry",
    "ChannelMapper",
    "EventDispatch",
    "FramePipeline",
    "NoralisParser",
    "RawChannelMap",
    "RecordBuffer",
    "RecordParser",
    "TelemetryFrame",
    "Wits0Parser",
    "Wits1Parser",
    "apply_mappings",
    "get_parser",
    "to_camel_case",
]
