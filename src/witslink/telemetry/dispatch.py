"""Fan-out callback registries.

Each registry delivers an event to every registered callback, each
error-isolated: one callback raising does not affect the others or the
caller.  Callbacks may be plain functions or coroutine functions; the
latter are scheduled on the running loop.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

    from witslink.telemetry.frames import TelemetryFrame

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CallbackRegistry(Generic[T]):
    """Ordered set of callbacks receiving one argument of type ``T``."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._callbacks: list[Callable[[T], Any]] = []
        self._tasks: set[asyncio.Task[Any]] = set()

    def add(self, callback: Callable[[T], Any]) -> None:
        """Register *callback*.  Registering the same callable twice is a no-op."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def remove(self, callback: Callable[[T], Any]) -> bool:
        """Unregister *callback*.  Returns ``True`` if it was registered."""
        try:
            self._callbacks.remove(callback)
        except ValueError:
            return False
        return True

    def clear(self) -> None:
        self._callbacks.clear()

    def __len__(self) -> int:
        return len(self._callbacks)

    def dispatch(self, event: T) -> None:
        """Deliver *event* to every callback registered at call time."""
        for callback in list(self._callbacks):
            try:
                result = callback(event)
            except Exception:
                logger.warning("%s callback %r failed", self._name, callback, exc_info=True)
                continue
            if inspect.isawaitable(result):
                self._schedule(callback, result)

    def _schedule(self, callback: Callable[[T], Any], awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "%s callback %r is async but no event loop is running", self._name, callback
            )
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)

        def _done(t: asyncio.Task[Any]) -> None:
            self._tasks.discard(t)
            if not t.cancelled() and t.exception() is not None:
                logger.warning(
                    "%s callback %r failed",
                    self._name,
                    callback,
                    exc_info=t.exception(),
                )

        task.add_done_callback(_done)


class EventDispatch:
    """The three subscription points exposed by the client."""

    def __init__(self) -> None:
        self.connection: CallbackRegistry[bool] = CallbackRegistry("connection")
        self.data: CallbackRegistry[TelemetryFrame] = CallbackRegistry("data")
        self.error: CallbackRegistry[str | None] = CallbackRegistry("error")
