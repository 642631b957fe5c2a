"""Exception hierarchy for witslink.

Nothing here crosses the public :class:`~witslink.client.WitsClient`
boundary: transport failures are converted into messages on the error
channel, and parse failures into a logged warning plus a dropped record.
"""

from __future__ import annotations


class WitsLinkError(Exception):
    """Base class for every witslink exception."""


class ConfigError(WitsLinkError):
    """Invalid connection options or mapping file."""


class TransportError(WitsLinkError):
    """A transport adapter failed to open, read, or write."""


class ConnectTimeoutError(TransportError):
    """The adapter did not open within its connect timeout."""


class HeartbeatError(TransportError):
    """Too many WebSocket heartbeat replies were missed."""


class RecordParseError(WitsLinkError):
    """A single record could not be parsed and was discarded."""
