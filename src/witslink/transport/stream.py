"""Stream adapters: TCP sockets and serial ports.

Both hand back an ``asyncio`` reader/writer pair, so reading, writing and
shutdown are shared; only opening differs.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from abc import abstractmethod
from typing import TYPE_CHECKING, ClassVar

from witslink.errors import TransportError
from witslink.models.config import TransportKind
from witslink.transport.base import CLOSE_NORMAL, Transport

if TYPE_CHECKING:
    from witslink.models.config import ConnectionOptions
    from witslink.transport.base import TransportListener

logger = logging.getLogger(__name__)


class StreamTransport(Transport):
    """Shared reader/writer plumbing."""

    read_size: ClassVar[int] = 4096
    eof_reason: ClassVar[str] = "Connection closed"

    def __init__(self, options: ConnectionOptions, listener: TransportListener) -> None:
        super().__init__(options, listener)
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    @property
    def is_writable(self) -> bool:
        return self.is_open and self._writer is not None and not self._writer.is_closing()

    @abstractmethod
    async def _open_streams(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]: ...

    def _configure(self, writer: asyncio.StreamWriter) -> None:
        """Hook for socket options once the stream is open."""

    async def _open(self) -> None:
        self._reader, self._writer = await self._open_streams()
        self._configure(self._writer)

    async def _read(self) -> bytes:
        assert self._reader is not None
        return await self._reader.read(self.read_size)

    async def _receive(self) -> tuple[int, str]:
        while True:
            chunk = await self._read()
            if not chunk:
                return CLOSE_NORMAL, self.eof_reason
            self._emit_data(chunk)

    def send(self, data: bytes) -> None:
        if not self.is_writable:
            raise TransportError(f"{self.kind} stream is not writable")
        assert self._writer is not None
        self._writer.write(data)

    async def _cleanup(self) -> None:
        writer, self._writer = self._writer, None
        self._reader = None
        if writer is None:
            return
        writer.close()
        with contextlib.suppress(Exception):
            await writer.wait_closed()


class TcpTransport(StreamTransport):
    """TCP client with keep-alive, no send coalescing, and an idle timeout."""

    kind = TransportKind.TCP

    async def _open_streams(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        logger.info("Opening TCP connection to %s:%d", self._options.host, self._options.port)
        return await asyncio.open_connection(self._options.host, self._options.port)

    def _configure(self, writer: asyncio.StreamWriter) -> None:
        sock = writer.get_extra_info("socket")
        if sock is None:
            return
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        if hasattr(socket, "TCP_KEEPIDLE"):
            sock.setsockopt(
                socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, max(1, int(self._options.tcp_keepalive))
            )
        logger.debug("TCP socket configured with keepalive and no delay")

    @property
    def idle_timeout(self) -> float:
        """Read timeout; never shorter than the client's staleness window."""
        return max(self._options.tcp_idle_timeout, self._options.effective_data_timeout)

    async def _read(self) -> bytes:
        assert self._reader is not None
        idle = self.idle_timeout
        try:
            return await asyncio.wait_for(self._reader.read(self.read_size), timeout=idle)
        except TimeoutError as exc:
            raise TransportError(f"Socket idle for {idle:g} seconds") from exc


class SerialTransport(StreamTransport):
    """Serial device at a fixed baud rate, 8 data bits, no parity, 1 stop bit."""

    kind = TransportKind.SERIAL
    eof_reason = "Serial connection closed"

    async def _open_streams(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        import serial
        import serial_asyncio

        logger.info(
            "Opening serial device %s at %d baud",
            self._options.serial_device,
            self._options.baud_rate,
        )
        return await serial_asyncio.open_serial_connection(
            url=self._options.serial_device,
            baudrate=self._options.baud_rate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
        )
