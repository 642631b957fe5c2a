"""Connection manager: the public entry point of witslink.

:class:`WitsClient` owns one transport adapter at a time and drives it
through a small state machine::

    DISCONNECTED → CONNECTING → CONNECTED
         ↑              │            │
         └──────────────┴─ closed / error ─→ RECONNECTING → CONNECTING …

Inbound bytes flow adapter → :class:`RecordBuffer` → record parser →
:class:`ChannelMapper` → ``on_data`` subscribers.  Connection changes and
human-readable status/error messages go to ``on_connection_change`` and
``on_error`` subscribers.

All work happens on the running asyncio loop.  :meth:`connect` and
:meth:`disconnect` are plain methods that never block and never raise;
failures surface on the error channel instead.
"""

from __future__ import annotations

import asyncio
import errno
import json
import logging
import time
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from witslink.errors import HeartbeatError
from witslink.health import HealthMonitor
from witslink.models.config import ConnectionOptions, TransportKind
from witslink.telemetry.dispatch import EventDispatch
from witslink.telemetry.pipeline import FramePipeline
from witslink.transport import CLOSE_ABNORMAL, CLOSE_NORMAL, create_transport

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from witslink.models.mapping import MappingTable
    from witslink.telemetry.frames import TelemetryFrame
    from witslink.transport import Transport, TransportListener

    TransportFactory = Callable[[ConnectionOptions, TransportListener], Transport]

logger = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


def describe_failure(exc: BaseException) -> str:
    """Turn an adapter failure into the message shown to subscribers."""
    if isinstance(exc, HeartbeatError):
        return str(exc)
    text = str(exc)
    if (
        isinstance(exc, ConnectionRefusedError)
        or getattr(exc, "errno", None) == errno.ECONNREFUSED
        or f"[Errno {errno.ECONNREFUSED}]" in text
        or "ECONNREFUSED" in text
    ):
        return "Connection refused - WITS server not available"
    return f"Connection error: {text or type(exc).__name__}"


def describe_close(code: int, reason: str) -> str | None:
    """Message for a peer-initiated close, or ``None`` for a normal one."""
    if code == CLOSE_NORMAL:
        return None
    if code == CLOSE_ABNORMAL:
        return "Connection closed abnormally"
    return f"Connection closed: {reason or 'Unknown reason'}"


class WitsClient:
    """Streams drilling telemetry from one WITS / Noralis source.

    Usage::

        client = WitsClient(ConnectionOptions(host="10.0.0.5", port=5000))
        client.on_data(lambda frame: print(frame["bitDepth"]))
        async with client:
            await asyncio.sleep(60)

    *transport_factory* builds the adapter for each connection attempt;
    it defaults to :func:`witslink.transport.create_transport`.
    """

    def __init__(
        self,
        options: ConnectionOptions | None = None,
        mappings: MappingTable | None = None,
        *,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._options = options or ConnectionOptions()
        self._factory = transport_factory or create_transport
        self._pipeline = FramePipeline(self._options, mappings)
        self._events = EventDispatch()

        self._state = ConnectionState.DISCONNECTED
        self._transport: Transport | None = None
        self._health: HealthMonitor | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._reconnect_attempts = 0

        self._last_error: str | None = None
        self._last_data_mono = time.monotonic()
        self._last_data_time: datetime | None = None
        self._frame_count = 0

    # -- Properties ------------------------------------------------------------

    @property
    def options(self) -> ConnectionOptions:
        return self._options

    @property
    def mappings(self) -> MappingTable | None:
        return self._pipeline.mappings

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def last_data_time(self) -> datetime | None:
        """Wall-clock time of the last received chunk (or connection start)."""
        return self._last_data_time

    @property
    def frame_count(self) -> int:
        return self._frame_count

    # -- Subscriptions ---------------------------------------------------------

    def on_connection_change(self, callback: Callable[[bool], Any]) -> None:
        self._events.connection.add(callback)

    def on_data(self, callback: Callable[[TelemetryFrame], Any]) -> None:
        self._events.data.add(callback)

    def on_error(self, callback: Callable[[str | None], Any]) -> None:
        self._events.error.add(callback)

    def remove_connection_change(self, callback: Callable[[bool], Any]) -> bool:
        return self._events.connection.remove(callback)

    def remove_data(self, callback: Callable[[TelemetryFrame], Any]) -> bool:
        return self._events.data.remove(callback)

    def remove_error(self, callback: Callable[[str | None], Any]) -> bool:
        return self._events.error.remove(callback)

    # -- Lifecycle -------------------------------------------------------------

    def connect(self) -> None:
        """Open a connection.  No-op while connecting or connected.

        A manual call restarts the reconnect budget, so it also recovers a
        client that gave up after ``max_reconnect_attempts``.
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            logger.debug("connect() ignored in state %s", self._state)
            return
        self._cancel_reconnect()
        self._reconnect_attempts = 0
        self._start_connection()

    def disconnect(self) -> None:
        """Close the connection and cancel any pending reconnect."""
        self._cancel_reconnect()
        self._stop_health()
        transport, self._transport = self._transport, None
        if transport is not None:
            if transport.is_writable:
                try:
                    transport.send(self._encode_command({"command": "disconnect"}, transport))
                except Exception:
                    logger.debug("Disconnect notice not sent", exc_info=True)
            transport.close()
        self._pipeline.reset()
        self._reconnect_attempts = 0
        self._set_state(ConnectionState.DISCONNECTED)
        self._events.connection.dispatch(False)
        self._set_error(None)

    async def aclose(self) -> None:
        """Disconnect and wait for the adapter to release its resources."""
        transport = self._transport
        self.disconnect()
        if transport is not None:
            await transport.wait_closed()

    async def __aenter__(self) -> WitsClient:
        self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def update_options(self, options: ConnectionOptions) -> None:
        """Replace the connection options, reconnecting if a link is active."""
        active = self._state != ConnectionState.DISCONNECTED
        if active:
            self.disconnect()
        self._options = options
        self._pipeline = FramePipeline(options, self._pipeline.mappings)
        if active:
            self.connect()

    def update_mappings(self, mappings: MappingTable | None) -> None:
        """Swap the mapping table; applies from the next record on."""
        self._pipeline.update_mappings(mappings)

    def send_command(self, command: str, params: Any = None) -> bool:
        """Send a JSON command to the source.  Returns ``True`` if queued."""
        transport = self._transport
        if transport is None or not transport.is_writable:
            self._set_error("Cannot send command: Not connected")
            return False
        payload: dict[str, Any] = {"command": command}
        if params is not None:
            payload["params"] = params
        try:
            transport.send(self._encode_command(payload, transport))
        except Exception as exc:
            self._set_error(f"Error sending command: {exc}")
            return False
        return True

    # -- Transport events --------------------------------------------------------

    def transport_opened(self, transport: Transport) -> None:
        if transport is not self._transport:
            return
        logger.info("Connected to %s", self._options.endpoint_label)
        self._reconnect_attempts = 0
        self._set_state(ConnectionState.CONNECTED)
        self._touch()
        self._set_error(None)
        self._events.connection.dispatch(True)
        self._start_health()
        if self._options.is_noralis and not transport.framed:
            # Noralis sources start streaming once they see a delimiter.
            self._write(transport, self._options.effective_delimiter.encode("ascii"))

    def transport_data(self, transport: Transport, chunk: bytes) -> None:
        if transport is not self._transport:
            return
        self._touch()
        for frame in self._pipeline.feed(chunk, final=transport.framed):
            if self._transport is not transport:
                # A subscriber disconnected us mid-chunk.
                return
            self._frame_count += 1
            self._events.data.dispatch(frame)

    def transport_closed(self, transport: Transport, code: int, reason: str) -> None:
        if transport is not self._transport:
            return
        self._teardown(describe_close(code, reason))
        self._schedule_reconnect()

    def transport_error(self, transport: Transport, exc: BaseException) -> None:
        if transport is not self._transport:
            return
        self._teardown(describe_failure(exc))
        self._schedule_reconnect()

    # -- Internals ---------------------------------------------------------------

    def _describe_target(self) -> str:
        if self._options.transport == TransportKind.WEBSOCKET:
            from witslink.transport.websocket import build_url

            return build_url(self._options)
        return f"{self._options.transport} {self._options.endpoint_label}"

    def _start_connection(self) -> None:
        self._pipeline.reset()
        self._touch()
        try:
            transport = self._factory(self._options, self)
            self._transport = transport
            self._set_state(ConnectionState.CONNECTING)
            self._set_error(f"Connecting to {self._describe_target()}...")
            transport.start()
        except Exception as exc:
            logger.warning("Could not start transport: %s", exc)
            self._transport = None
            self._teardown(describe_failure(exc))
            self._schedule_reconnect()

    def _teardown(self, error: str | None) -> None:
        self._stop_health()
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()
        self._set_state(ConnectionState.DISCONNECTED)
        self._events.connection.dispatch(False)
        if error is not None:
            self._set_error(error)

    def _schedule_reconnect(self) -> None:
        if self._reconnect_handle is not None or self._state in (
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
        ):
            return
        limit = self._options.max_reconnect_attempts
        if self._reconnect_attempts >= limit:
            self._set_error(
                f"Maximum reconnect attempts ({limit}) reached. "
                "Please check your connection settings and try again manually."
            )
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Cannot schedule reconnect without a running event loop")
            return

        self._reconnect_attempts += 1
        delay = self._options.reconnect_interval
        self._set_state(ConnectionState.RECONNECTING)
        self._set_error(
            f"Reconnecting (attempt {self._reconnect_attempts}/{limit}) in {delay:g} seconds..."
        )
        self._reconnect_handle = loop.call_later(delay, self._reconnect)

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            return
        self._start_connection()

    def _cancel_reconnect(self) -> None:
        handle, self._reconnect_handle = self._reconnect_handle, None
        if handle is not None:
            handle.cancel()

    def _start_health(self) -> None:
        self._stop_health()
        self._health = HealthMonitor(
            interval=self._options.health_check_interval,
            data_timeout=self._options.effective_data_timeout,
            last_data=lambda: self._last_data_mono,
            on_stale=self._on_stale,
            probe=self._probe,
        )
        self._health.start()

    def _stop_health(self) -> None:
        health, self._health = self._health, None
        if health is not None:
            health.stop()

    def _on_stale(self, idle: float) -> None:
        if self._state != ConnectionState.CONNECTED:
            return
        timeout = self._options.effective_data_timeout
        self._teardown(f"No data received for {timeout:g} seconds")
        self._schedule_reconnect()

    def _probe(self) -> None:
        transport = self._transport
        if self._state != ConnectionState.CONNECTED or transport is None:
            return
        if not transport.is_writable:
            logger.debug("Skipping keep-alive: transport not writable")
            return
        if self._options.is_noralis and not transport.framed:
            payload = self._options.effective_delimiter.encode("ascii")
        else:
            payload = self._encode_command({"command": "ping"}, transport)
        transport.send(payload)

    def _encode_command(self, payload: dict[str, Any], transport: Transport) -> bytes:
        text = json.dumps(payload)
        if not transport.framed:
            text += self._options.effective_delimiter
        return text.encode("utf-8")

    def _write(self, transport: Transport, data: bytes) -> None:
        if not transport.is_writable:
            return
        try:
            transport.send(data)
        except Exception:
            logger.warning("Write to %s transport failed", transport.kind, exc_info=True)

    def _touch(self) -> None:
        self._last_data_mono = time.monotonic()
        self._last_data_time = datetime.now(UTC)

    def _set_state(self, state: ConnectionState) -> None:
        if state != self._state:
            logger.debug("State %s → %s", self._state, state)
            self._state = state

    def _set_error(self, message: str | None) -> None:
        self._last_error = message
        self._events.error.dispatch(message)
