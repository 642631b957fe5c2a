"""Record parsers for the three supported wire formats.

Noralis (variable channel/value text)::

    01 1234.5 02 5678.9 08 9123.0

WITS Level 0 (fixed 6-character fields, >= 120 chars; field 0 is the
record header, field *n* carries channel *n*)::

    "  1984  9123.0  45.2   ..."

WITS Level 1 (one JSON object per record)::

    {"8": 9123.0, "timestamp": "2024-07-01T12:00:00Z"}

Every parser returns ``None`` for a record it has to discard; a bad record
never interrupts the stream.
"""

from __future__ import annotations

import json
import logging
import math
import re
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from witslink.errors import RecordParseError
from witslink.models.config import ProtocolVariant
from witslink.telemetry.frames import ChannelKey, RawChannelMap, utc_timestamp

logger = logging.getLogger(__name__)

WITS0_FIELD_WIDTH = 6
WITS0_MIN_RECORD_LENGTH = 120

_NORALIS_CHANNEL = re.compile(r"[0-9]{2}")


def _to_float(value: Any) -> float | None:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


class RecordParser(ABC):
    """Converts one delimited record into a :class:`RawChannelMap`."""

    source: ClassVar[str]

    def parse(self, record: str) -> RawChannelMap | None:
        """Parse *record*, or log and return ``None`` if it must be dropped."""
        try:
            return self._parse(record)
        except RecordParseError as exc:
            logger.warning("Discarding %s record: %s", self.source, exc)
            return None

    @abstractmethod
    def _parse(self, record: str) -> RawChannelMap | None:
        """Raise :class:`RecordParseError` for malformed records."""


class NoralisParser(RecordParser):
    """Whitespace-separated ``CC value`` pairs."""

    source = "noralis"

    def _parse(self, record: str) -> RawChannelMap:
        tokens = record.split()
        if len(tokens) % 2 != 0:
            raise RecordParseError(f"odd number of items ({len(tokens)}): {record!r}")

        channels: dict[ChannelKey, Any] = {}
        for channel_str, value_str in zip(tokens[::2], tokens[1::2], strict=True):
            if not _NORALIS_CHANNEL.fullmatch(channel_str):
                continue
            value = _to_float(value_str)
            if value is not None:
                channels[int(channel_str)] = value

        return RawChannelMap(channels=channels, source=self.source)


class Wits0Parser(RecordParser):
    """Fixed-width WITS Level 0 records."""

    source = "wits"

    def _parse(self, record: str) -> RawChannelMap | None:
        if len(record) < WITS0_MIN_RECORD_LENGTH:
            logger.debug(
                "Ignoring short WITS0 record (%d < %d chars)",
                len(record),
                WITS0_MIN_RECORD_LENGTH,
            )
            return None

        fields = [
            record[i : i + WITS0_FIELD_WIDTH].strip()
            for i in range(0, len(record), WITS0_FIELD_WIDTH)
        ]
        channels: dict[ChannelKey, Any] = {}
        for channel, text in enumerate(fields[1:], start=1):
            value = _to_float(text)
            if value is not None:
                channels[channel] = value

        return RawChannelMap(channels=channels, source=self.source)


class Wits1Parser(RecordParser):
    """JSON WITS Level 1 records keyed by channel id or field name."""

    source = "wits"

    def _parse(self, record: str) -> RawChannelMap:
        try:
            data = json.loads(record)
        except json.JSONDecodeError as exc:
            raise RecordParseError(f"invalid JSON ({exc.msg})") from exc
        if not isinstance(data, dict):
            raise RecordParseError(f"expected a JSON object, got {type(data).__name__}")

        timestamp = data.pop("timestamp", None) or utc_timestamp()
        source = data.pop("source", None) or self.source

        channels: dict[ChannelKey, Any] = {}
        for key, value in data.items():
            channels[int(key) if key.isascii() and key.isdigit() else key] = value

        return RawChannelMap(channels=channels, source=str(source), timestamp=str(timestamp))


_PARSERS: dict[ProtocolVariant, type[RecordParser]] = {
    ProtocolVariant.NORALIS: NoralisParser,
    ProtocolVariant.WITS0: Wits0Parser,
    ProtocolVariant.WITS1: Wits1Parser,
}


def get_parser(variant: ProtocolVariant | str) -> RecordParser:
    """Return a parser instance for *variant*."""
    try:
        return _PARSERS[ProtocolVariant(variant)]()
    except (KeyError, ValueError) as exc:
        raise ValueError(f"No parser registered for protocol: {variant}") from exc
