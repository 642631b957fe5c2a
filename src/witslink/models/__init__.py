from __future__ import annotations

from witslink.models.config import (
    AppSettings,
    ConnectionOptions,
    ProtocolVariant,
    TransportKind,
    WellInfo,
)
from witslink.models.mapping import MappingEntry, MappingTable

__all__ = [
    # config
    "AppSettings",
    "ConnectionOptions",
    "ProtocolVariant",
    "TransportKind",
    "WellInfo",
    # mapping
    "MappingEntry",
    "MappingTable",
]
