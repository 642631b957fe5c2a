"""Transport adapter contract.

An adapter moves bytes and reports lifecycle events; it never looks at
record content.  One adapter instance is one session:

    run():  open (hard timeout) → opened → data* → closed | error

Exactly one terminal event (``closed`` or ``error``) is reported per
session, and none at all once the owner has called :meth:`close`.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar, Protocol

from witslink.errors import ConnectTimeoutError

if TYPE_CHECKING:
    from witslink.models.config import ConnectionOptions, TransportKind

logger = logging.getLogger(__name__)

CLOSE_NORMAL = 1000
CLOSE_ABNORMAL = 1006


class TransportListener(Protocol):
    """Receives adapter events.  Each event names the adapter that raised it."""

    def transport_opened(self, transport: Transport) -> None: ...

    def transport_data(self, transport: Transport, chunk: bytes) -> None: ...

    def transport_closed(self, transport: Transport, code: int, reason: str) -> None: ...

    def transport_error(self, transport: Transport, exc: BaseException) -> None: ...


class Transport(ABC):
    """Base class for WebSocket, TCP, UDP, and serial adapters."""

    kind: ClassVar[TransportKind]
    framed: ClassVar[bool] = False
    """``True`` when each inbound message is a complete unit (WebSocket)."""
    default_connect_timeout: ClassVar[float] = 60.0
    timeout_message: ClassVar[str] = "Connection timeout - verify server is running and accessible"

    def __init__(self, options: ConnectionOptions, listener: TransportListener) -> None:
        self._options = options
        self._listener = listener
        self._task: asyncio.Task[None] | None = None
        self._opened = False
        self._finished = False

    @property
    def options(self) -> ConnectionOptions:
        return self._options

    @property
    def connect_timeout(self) -> float:
        return self._options.connect_timeout or self.default_connect_timeout

    @property
    def is_open(self) -> bool:
        return self._opened and not self._finished

    @property
    @abstractmethod
    def is_writable(self) -> bool:
        """Whether :meth:`send` can currently accept data."""

    def start(self) -> asyncio.Task[None]:
        """Schedule :meth:`run` on the running loop (idempotent)."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self.run(), name=f"witslink-{self.kind}"
            )
        return self._task

    async def run(self) -> None:
        """Open the link, then pump inbound data until it ends."""
        try:
            try:
                await asyncio.wait_for(self._open(), timeout=self.connect_timeout)
            except TimeoutError as exc:
                raise ConnectTimeoutError(self.timeout_message) from exc

            self._opened = True
            if not self._finished:
                self._listener.transport_opened(self)
            code, reason = await self._receive()
        except asyncio.CancelledError:
            self._finished = True
            raise
        except Exception as exc:
            self._report_error(exc)
        else:
            self._report_closed(code, reason)
        finally:
            await self._cleanup()

    def close(self) -> None:
        """Stop the session.  No further events are delivered."""
        self._finished = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait until the session task has finished its cleanup."""
        if self._task is not None:
            await asyncio.wait([self._task])

    @abstractmethod
    def send(self, data: bytes) -> None:
        """Queue *data* for transmission.  Raises if not writable."""

    @abstractmethod
    async def _open(self) -> None:
        """Establish the link (bounded by :attr:`connect_timeout`)."""

    @abstractmethod
    async def _receive(self) -> tuple[int, str]:
        """Deliver inbound data until the peer closes; return ``(code, reason)``."""

    @abstractmethod
    async def _cleanup(self) -> None:
        """Release the underlying handle.  Must not raise."""

    # -- Event helpers ---------------------------------------------------------

    def _emit_data(self, chunk: bytes) -> None:
        if not self._finished and chunk:
            self._listener.transport_data(self, chunk)

    def _report_closed(self, code: int, reason: str) -> None:
        if self._finished:
            return
        self._finished = True
        logger.info("%s transport closed: %d %s", self.kind, code, reason)
        self._listener.transport_closed(self, code, reason)

    def _report_error(self, exc: BaseException) -> None:
        if self._finished:
            return
        self._finished = True
        logger.info("%s transport failed: %s", self.kind, exc)
        self._listener.transport_error(self, exc)
