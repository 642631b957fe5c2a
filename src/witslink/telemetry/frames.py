"""Record-level data carriers.

:class:`RawChannelMap` is what a parser produces from one record;
:class:`TelemetryFrame` is what subscribers receive after mapping.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

ChannelKey = int | str


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(UTC).isoformat()


@dataclass
class RawChannelMap:
    """Channel id → value for one parsed record."""

    channels: dict[ChannelKey, Any]
    source: str
    timestamp: str = field(default_factory=utc_timestamp)
    attributes: dict[str, Any] = field(default_factory=dict)
    """Non-measurement context (well id, rig name, ...)."""


@dataclass(frozen=True)
class TelemetryFrame:
    """One complete reading, keyed by camelCase field name and raw channel id.

    Immutable: the same frame is handed to every subscriber, so
    :attr:`values` and :attr:`attributes` are read-only views over private
    copies of the mappings passed in.  Supports mapping access
    (``frame["wob"]``, ``frame[7]``, ``"wob" in frame``, ``frame.get(...)``).
    """

    values: Mapping[ChannelKey, Any]
    source: str
    timestamp: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def __getitem__(self, key: ChannelKey) -> Any:
        return self.values[key]

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def get(self, key: ChannelKey, default: Any = None) -> Any:
        return self.values.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        """Flatten into a single JSON-friendly dict (channel ids become strings)."""
        out: dict[str, Any] = {"timestamp": self.timestamp, "source": self.source}
        out.update(self.attributes)
        for key, value in self.values.items():
            out[str(key)] = value
        return out
