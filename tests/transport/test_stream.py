"""Tests for the TCP and serial stream adapters."""

from __future__ import annotations

import asyncio
import socket
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tests.conftest import RecordingListener, wait_until
from witslink.client import ConnectionState, WitsClient
from witslink.errors import ConnectTimeoutError, TransportError
from witslink.models.config import ConnectionOptions, ProtocolVariant, TransportKind
from witslink.transport.stream import SerialTransport, TcpTransport


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class _Server:
    """Loopback TCP server that records the writer of its single client."""

    def __init__(self) -> None:
        self.writer: asyncio.StreamWriter | None = None
        self.reader: asyncio.StreamReader | None = None
        self.server: asyncio.Server | None = None

    async def start(self) -> int:
        async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            self.reader, self.writer = reader, writer

        self.server = await asyncio.start_server(handle, "127.0.0.1", 0)
        return self.server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        if self.writer is not None:
            self.writer.close()
        assert self.server is not None
        self.server.close()
        await self.server.wait_closed()


class TestTcpTransport:
    async def test_open_receive_and_close(self, listener: RecordingListener) -> None:
        server = _Server()
        port = await server.start()
        transport = TcpTransport(ConnectionOptions(host="127.0.0.1", port=port), listener)
        try:
            transport.start()
            await wait_until(lambda: server.writer is not None and "opened" in listener.kinds())
            assert transport.is_open
            assert transport.is_writable

            assert server.writer is not None
            server.writer.write(b"01 100\r\n02 ")
            await server.writer.drain()
            server.writer.write(b"200\r\n")
            await server.writer.drain()
            await wait_until(lambda: listener.data == b"01 100\r\n02 200\r\n")

            server.writer.close()
            await wait_until(lambda: "closed" in listener.kinds())
            assert listener.events[-1] == ("closed", (1000, "Connection closed"))
            assert not transport.is_open
        finally:
            transport.close()
            await transport.wait_closed()
            await server.stop()

    async def test_send_reaches_server(self, listener: RecordingListener) -> None:
        server = _Server()
        port = await server.start()
        transport = TcpTransport(ConnectionOptions(host="127.0.0.1", port=port), listener)
        try:
            transport.start()
            await wait_until(lambda: server.reader is not None and transport.is_writable)
            transport.send(b'{"command": "ping"}\n')
            assert server.reader is not None
            line = await asyncio.wait_for(server.reader.readline(), timeout=2)
            assert line == b'{"command": "ping"}\n'
        finally:
            transport.close()
            await transport.wait_closed()
            await server.stop()

    async def test_socket_options(self, listener: RecordingListener) -> None:
        server = _Server()
        port = await server.start()
        transport = TcpTransport(ConnectionOptions(host="127.0.0.1", port=port), listener)
        try:
            transport.start()
            await wait_until(lambda: transport.is_writable)
            assert transport._writer is not None
            sock = transport._writer.get_extra_info("socket")
            assert sock.getsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE) != 0
            assert sock.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY) != 0
        finally:
            transport.close()
            await transport.wait_closed()
            await server.stop()

    async def test_refused_reports_error(self, listener: RecordingListener) -> None:
        transport = TcpTransport(
            ConnectionOptions(host="127.0.0.1", port=_free_port()), listener
        )
        transport.start()
        await transport.wait_closed()

        assert listener.kinds() == ["error"]
        exc = listener.events[0][1]
        assert isinstance(exc, ConnectionRefusedError)

    async def test_connect_timeout(self, listener: RecordingListener) -> None:
        async def never(*args: object, **kwargs: object) -> None:
            await asyncio.sleep(3600)

        opts = ConnectionOptions(host="127.0.0.1", port=1, connect_timeout=0.05)
        with patch("witslink.transport.stream.asyncio.open_connection", never):
            transport = TcpTransport(opts, listener)
            transport.start()
            await transport.wait_closed()

        assert listener.kinds() == ["error"]
        assert isinstance(listener.events[0][1], ConnectTimeoutError)
        assert "Connection timeout" in str(listener.events[0][1])

    async def test_idle_timeout(self, listener: RecordingListener) -> None:
        server = _Server()
        port = await server.start()
        opts = ConnectionOptions(
            host="127.0.0.1", port=port, tcp_idle_timeout=0.05, data_timeout=0.05
        )
        transport = TcpTransport(opts, listener)
        try:
            transport.start()
            await transport.wait_closed()
            assert listener.kinds() == ["opened", "error"]
            assert str(listener.events[-1][1]) == "Socket idle for 0.05 seconds"
        finally:
            await server.stop()

    def test_idle_timeout_covers_staleness_window(self, listener: RecordingListener) -> None:
        opts = ConnectionOptions(protocol=ProtocolVariant.NORALIS, tcp_idle_timeout=300)
        assert TcpTransport(opts, listener).idle_timeout == 600.0
        opts = ConnectionOptions(tcp_idle_timeout=900, data_timeout=10)
        assert TcpTransport(opts, listener).idle_timeout == 900.0

    async def test_quiet_noralis_source_outlives_idle_timeout(self) -> None:
        server = _Server()
        port = await server.start()
        opts = ConnectionOptions(
            host="127.0.0.1",
            port=port,
            protocol=ProtocolVariant.NORALIS,
            tcp_idle_timeout=0.05,
            data_timeout=1.0,
            health_check_interval=60,
        )
        client = WitsClient(opts)
        errors: list[str | None] = []
        client.on_error(errors.append)
        try:
            client.connect()
            await wait_until(lambda: client.is_connected)
            await asyncio.sleep(0.3)

            assert client.state == ConnectionState.CONNECTED
            assert not any(e and "idle" in e for e in errors)
        finally:
            await client.aclose()
            await server.stop()

    async def test_close_suppresses_events(self, listener: RecordingListener) -> None:
        server = _Server()
        port = await server.start()
        transport = TcpTransport(ConnectionOptions(host="127.0.0.1", port=port), listener)
        try:
            transport.start()
            await wait_until(lambda: "opened" in listener.kinds())
            transport.close()
            await transport.wait_closed()
            assert listener.kinds() == ["opened"]
            assert not transport.is_writable
        finally:
            await server.stop()

    def test_send_when_not_open_raises(self, listener: RecordingListener) -> None:
        transport = TcpTransport(ConnectionOptions(), listener)
        with pytest.raises(TransportError):
            transport.send(b"x")

    def test_default_connect_timeout(self, listener: RecordingListener) -> None:
        assert TcpTransport(ConnectionOptions(), listener).connect_timeout == 60.0
        opts = ConnectionOptions(connect_timeout=3)
        assert TcpTransport(opts, listener).connect_timeout == 3.0


class TestSerialTransport:
    async def test_opens_device_8n1(self, listener: RecordingListener) -> None:
        reader = asyncio.StreamReader()
        reader.feed_data(b"01 5\r\n")
        reader.feed_eof()
        writer = MagicMock()
        writer.is_closing.return_value = False
        writer.wait_closed = AsyncMock()

        opts = ConnectionOptions(
            transport=TransportKind.SERIAL, serial_device="/dev/ttyUSB3", baud_rate=19200
        )
        with patch(
            "serial_asyncio.open_serial_connection",
            new=AsyncMock(return_value=(reader, writer)),
        ) as mock_open:
            transport = SerialTransport(opts, listener)
            transport.start()
            await transport.wait_closed()

        mock_open.assert_awaited_once_with(
            url="/dev/ttyUSB3", baudrate=19200, bytesize=8, parity="N", stopbits=1
        )
        assert listener.kinds() == ["opened", "data", "closed"]
        assert listener.data == b"01 5\r\n"
        assert listener.events[-1] == ("closed", (1000, "Serial connection closed"))
        writer.close.assert_called_once()

    async def test_device_error(self, listener: RecordingListener) -> None:
        opts = ConnectionOptions(transport=TransportKind.SERIAL, serial_device="/dev/none")
        with patch(
            "serial_asyncio.open_serial_connection",
            new=AsyncMock(side_effect=OSError(2, "No such file or directory")),
        ):
            transport = SerialTransport(opts, listener)
            transport.start()
            await transport.wait_closed()

        assert listener.kinds() == ["error"]
        assert isinstance(listener.events[0][1], OSError)

    async def test_send_writes_to_device(self, listener: RecordingListener) -> None:
        reader = asyncio.StreamReader()
        writer = MagicMock()
        writer.is_closing.return_value = False
        writer.wait_closed = AsyncMock()

        opts = ConnectionOptions(transport=TransportKind.SERIAL)
        with patch(
            "serial_asyncio.open_serial_connection",
            new=AsyncMock(return_value=(reader, writer)),
        ):
            transport = SerialTransport(opts, listener)
            transport.start()
            await wait_until(lambda: transport.is_writable)
            transport.send(b"\r\n")
            transport.close()
            await transport.wait_closed()

        writer.write.assert_called_once_with(b"\r\n")
        assert listener.kinds() == ["opened"]
