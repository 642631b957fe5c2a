"""Shared fixtures: transport event recorder, fake transport, polling helper."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from witslink.models.config import ConnectionOptions, TransportKind


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* until it holds or *timeout* elapses (then fail)."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met before timeout")
        await asyncio.sleep(0.005)


class RecordingListener:
    """TransportListener that records every event it receives."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []
        self.chunks: list[bytes] = []

    def transport_opened(self, transport: Any) -> None:
        self.events.append(("opened", None))

    def transport_data(self, transport: Any, chunk: bytes) -> None:
        self.chunks.append(chunk)
        self.events.append(("data", chunk))

    def transport_closed(self, transport: Any, code: int, reason: str) -> None:
        self.events.append(("closed", (code, reason)))

    def transport_error(self, transport: Any, exc: BaseException) -> None:
        self.events.append(("error", exc))

    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.events]

    @property
    def data(self) -> bytes:
        return b"".join(self.chunks)


class FakeTransport:
    """In-memory adapter driven explicitly by the test."""

    kind = TransportKind.TCP

    def __init__(
        self,
        options: ConnectionOptions,
        listener: Any,
        *,
        framed: bool = False,
        on_start: Callable[[FakeTransport], None] | None = None,
    ) -> None:
        self.options = options
        self.listener = listener
        self.framed = framed
        self.on_start = on_start
        self.sent: list[bytes] = []
        self.started = False
        self.closed = False
        self.opened = False
        self.writable = True
        self.send_error: Exception | None = None

    @property
    def is_writable(self) -> bool:
        return self.opened and self.writable and not self.closed

    def start(self) -> None:
        self.started = True
        if self.on_start is not None:
            self.on_start(self)

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None

    def send(self, data: bytes) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(data)

    # -- Test drivers --------------------------------------------------------

    def open(self) -> None:
        self.opened = True
        self.listener.transport_opened(self)

    def feed(self, data: bytes | str) -> None:
        if isinstance(data, str):
            data = data.encode("ascii")
        self.listener.transport_data(self, data)

    def remote_close(self, code: int = 1000, reason: str = "") -> None:
        self.listener.transport_closed(self, code, reason)

    def fail(self, exc: BaseException) -> None:
        self.listener.transport_error(self, exc)


class FakeTransportFactory:
    """``transport_factory`` that hands out :class:`FakeTransport` instances."""

    def __init__(self) -> None:
        self.created: list[FakeTransport] = []
        self.framed = False
        self.on_start: Callable[[FakeTransport], None] | None = None

    def __call__(self, options: ConnectionOptions, listener: Any) -> FakeTransport:
        transport = FakeTransport(options, listener, framed=self.framed, on_start=self.on_start)
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]


@pytest.fixture()
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture()
def fake_factory() -> FakeTransportFactory:
    return FakeTransportFactory()


def wits0_record(values: dict[int, Any], fields: int = 20) -> str:
    """Build a fixed-width WITS Level 0 record (header field + *fields* channels)."""
    cells = [f"{'HDR':>6}"]
    for channel in range(1, fields + 1):
        cells.append(f"{values.get(channel, '')!s:>6}")
    return "".join(cells)
