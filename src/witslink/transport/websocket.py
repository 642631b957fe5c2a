"""WebSocket adapter.

Each WebSocket message is a complete unit, so the client flushes its
buffer after every message instead of waiting for a delimiter.

Liveness is checked with an application-level heartbeat understood by the
WITS proxy: ``{"type": "ping", "timestamp": <ms>}`` every
``heartbeat_interval`` seconds, answered by ``{"type": "pong"}``.  Pong
replies never reach the data stream.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import time
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from witslink.errors import HeartbeatError, TransportError
from witslink.models.config import TransportKind
from witslink.transport.base import CLOSE_ABNORMAL, Transport

if TYPE_CHECKING:
    from websockets.asyncio.client import ClientConnection

    from witslink.models.config import ConnectionOptions
    from witslink.transport.base import TransportListener

logger = logging.getLogger(__name__)

_NORALIS_VERSION = "0"
_SEND_DRAIN_TIMEOUT = 1.0


def build_url(options: ConnectionOptions) -> str:
    """Return the ``ws[s]://`` URL for *options*, including query parameters."""
    secure = options.use_tls
    scheme = "wss" if secure else "ws"
    port = options.port or (443 if secure else 80)
    endpoint = options.ws_endpoint or ("/noralis" if options.is_noralis else "/wits")
    if not endpoint.startswith("/"):
        endpoint = "/" + endpoint

    params: dict[str, str] = {}
    if options.proxy:
        params["host"] = options.proxy_host
        params["port"] = str(options.proxy_port)
        params["protocol"] = "tcp"
    if options.is_noralis:
        params["noralis"] = "true"
        params["version"] = _NORALIS_VERSION

    url = f"{scheme}://{options.host}:{port}{endpoint}"
    if params:
        url += "?" + urlencode(params)
    return url


def is_pong(message: str | bytes) -> bool:
    """Whether *message* is a heartbeat reply rather than telemetry."""
    if isinstance(message, bytes):
        return False
    text = message.strip()
    if not text.startswith("{"):
        return False
    try:
        payload = json.loads(text)
    except ValueError:
        return False
    return isinstance(payload, dict) and payload.get("type") == "pong"


class WebSocketTransport(Transport):
    kind = TransportKind.WEBSOCKET
    framed = True
    default_connect_timeout = 20.0

    def __init__(self, options: ConnectionOptions, listener: TransportListener) -> None:
        super().__init__(options, listener)
        self._ws: ClientConnection | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._pong = asyncio.Event()
        self._failure: HeartbeatError | None = None
        self._sends: set[asyncio.Task[Any]] = set()

    @property
    def url(self) -> str:
        return build_url(self._options)

    @property
    def is_writable(self) -> bool:
        if not self.is_open or self._ws is None:
            return False
        from websockets.protocol import State

        return self._ws.state is State.OPEN

    async def _open(self) -> None:
        from websockets.asyncio.client import connect

        url = self.url
        logger.info("Opening WebSocket connection to %s", url)
        # The JSON heartbeat replaces protocol-level pings.
        self._ws = await connect(url, open_timeout=None, ping_interval=None)

    async def _receive(self) -> tuple[int, str]:
        from websockets.exceptions import ConnectionClosed

        assert self._ws is not None
        self._heartbeat_task = asyncio.get_running_loop().create_task(self._heartbeat())
        try:
            async for message in self._ws:
                if is_pong(message):
                    self._pong.set()
                    continue
                self._emit_data(message.encode("utf-8") if isinstance(message, str) else message)
        except ConnectionClosed:
            pass

        if self._failure is not None:
            raise self._failure
        code = self._ws.close_code or CLOSE_ABNORMAL
        reason = self._ws.close_reason or ""
        return code, reason

    async def _heartbeat(self) -> None:
        from websockets.exceptions import ConnectionClosed

        assert self._ws is not None
        opts = self._options
        missed = 0
        while True:
            await asyncio.sleep(opts.heartbeat_interval)
            self._pong.clear()
            ping = json.dumps({"type": "ping", "timestamp": int(time.time() * 1000)})
            try:
                await self._ws.send(ping)
            except ConnectionClosed:
                return
            try:
                await asyncio.wait_for(self._pong.wait(), timeout=opts.pong_timeout)
            except TimeoutError:
                missed += 1
                logger.warning("Missed heartbeat response (%d/%d)", missed, opts.max_missed_pongs)
                if missed >= opts.max_missed_pongs:
                    self._failure = HeartbeatError(
                        f"Connection unstable: Missed {opts.max_missed_pongs} heartbeat responses"
                    )
                    await self._ws.close()
                    return
            else:
                missed = 0

    def send(self, data: bytes) -> None:
        if not self.is_writable:
            raise TransportError("WebSocket is not open")
        assert self._ws is not None
        task = asyncio.get_running_loop().create_task(self._ws.send(data.decode("utf-8")))
        self._sends.add(task)
        task.add_done_callback(self._send_done)

    def _send_done(self, task: asyncio.Task[Any]) -> None:
        self._sends.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("WebSocket send failed: %s", task.exception())

    async def _cleanup(self) -> None:
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await self._heartbeat_task
            self._heartbeat_task = None
        if self._sends:
            await asyncio.wait(set(self._sends), timeout=_SEND_DRAIN_TIMEOUT)
        ws, self._ws = self._ws, None
        if ws is not None:
            with contextlib.suppress(Exception):
                await ws.close()
