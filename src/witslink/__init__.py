"""witslink: drilling telemetry ingestion client (WITS 0/1, Noralis MWD)."""

from __future__ import annotations

__version__ = "0.3.0"

from witslink.client import ConnectionState, WitsClient
from witslink.models.config import ConnectionOptions, ProtocolVariant, TransportKind, WellInfo
from witslink.models.mapping import MappingEntry, MappingTable
from witslink.telemetry.frames import RawChannelMap, TelemetryFrame

__all__ = [
    "ConnectionOptions",
    "ConnectionState",
    "MappingEntry",
    "MappingTable",
    "ProtocolVariant",
    "RawChannelMap",
    "TelemetryFrame",
    "TransportKind",
    "WellInfo",
    "WitsClient",
    "__version__",
]
