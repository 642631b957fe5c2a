"""UDP listener adapter.

Binds ``bind_host:port`` and treats every datagram as one data chunk.
Outbound data goes to the last peer a datagram was received from.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from witslink.errors import TransportError
from witslink.models.config import TransportKind
from witslink.transport.base import CLOSE_NORMAL, Transport

if TYPE_CHECKING:
    from witslink.models.config import ConnectionOptions
    from witslink.transport.base import TransportListener

logger = logging.getLogger(__name__)


class _DatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, owner: UdpTransport) -> None:
        self._owner = owner

    def datagram_received(self, data: bytes, addr: tuple[str | Any, int]) -> None:
        self._owner._on_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        logger.warning("UDP socket error: %s", exc)

    def connection_lost(self, exc: Exception | None) -> None:
        self._owner._on_lost(exc)


class UdpTransport(Transport):
    kind = TransportKind.UDP

    def __init__(self, options: ConnectionOptions, listener: TransportListener) -> None:
        super().__init__(options, listener)
        self._endpoint: asyncio.DatagramTransport | None = None
        self._lost: asyncio.Future[Exception | None] | None = None
        self._peer: tuple[str | Any, int] | None = None

    @property
    def local_address(self) -> tuple[str, int] | None:
        """The bound ``(host, port)``; useful when binding port 0."""
        if self._endpoint is None:
            return None
        return self._endpoint.get_extra_info("sockname")[:2]

    @property
    def peer(self) -> tuple[str | Any, int] | None:
        return self._peer

    @property
    def is_writable(self) -> bool:
        return (
            self.is_open
            and self._peer is not None
            and self._endpoint is not None
            and not self._endpoint.is_closing()
        )

    async def _open(self) -> None:
        loop = asyncio.get_running_loop()
        self._lost = loop.create_future()
        local = (self._options.bind_host, self._options.port)
        logger.info("Binding UDP listener on %s:%d", *local)
        self._endpoint, _ = await loop.create_datagram_endpoint(
            lambda: _DatagramProtocol(self), local_addr=local
        )

    async def _receive(self) -> tuple[int, str]:
        assert self._lost is not None
        exc = await self._lost
        if exc is not None:
            raise TransportError(str(exc)) from exc
        return CLOSE_NORMAL, "UDP connection closed"

    def send(self, data: bytes) -> None:
        if not self.is_writable:
            raise TransportError("UDP listener has no peer to send to")
        assert self._endpoint is not None
        self._endpoint.sendto(data, self._peer)

    async def _cleanup(self) -> None:
        endpoint, self._endpoint = self._endpoint, None
        if endpoint is not None:
            endpoint.close()

    def _on_datagram(self, data: bytes, addr: tuple[str | Any, int]) -> None:
        self._peer = addr
        self._emit_data(data)

    def _on_lost(self, exc: Exception | None) -> None:
        if self._lost is not None and not self._lost.done():
            self._lost.set_result(exc)
