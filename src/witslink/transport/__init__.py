"""Transport adapters (WebSocket, TCP, UDP, serial) and the adapter registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

from witslink.errors import ConfigError
from witslink.models.config import TransportKind
from witslink.transport.base import CLOSE_ABNORMAL, CLOSE_NORMAL, Transport, TransportListener
from witslink.transport.stream import SerialTransport, StreamTransport, TcpTransport
from witslink.transport.udp import UdpTransport
from witslink.transport.websocket import WebSocketTransport

if TYPE_CHECKING:
    from witslink.models.config import ConnectionOptions

_TRANSPORTS: dict[TransportKind, type[Transport]] = {
    TransportKind.TCP: TcpTransport,
    TransportKind.UDP: UdpTransport,
    TransportKind.SERIAL: SerialTransport,
    TransportKind.WEBSOCKET: WebSocketTransport,
}


def create_transport(options: ConnectionOptions, listener: TransportListener) -> Transport:
    """Build the adapter for ``options.transport``.  The adapter is not started."""
    try:
        cls = _TRANSPORTS[options.transport]
    except KeyError:
        raise ConfigError(f"Unsupported transport: {options.transport}") from None
    return cls(options, listener)


__all__ = [
    "CLOSE_ABNORMAL",
    "CLOSE_NORMAL",
    "SerialTransport",
    "StreamTransport",
    "TcpTransport",
    "Transport",
    "TransportListener",
    "UdpTransport",
    "WebSocketTransport",
    "create_transport",
]
