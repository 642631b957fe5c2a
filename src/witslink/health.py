"""Periodic liveness check for an open connection.

Every ``interval`` seconds the monitor compares the time since the last
received data with the staleness window.  A stale link is handed to
``on_stale``; a live one gets a keep-alive ``probe``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class HealthMonitor:
    def __init__(
        self,
        *,
        interval: float,
        data_timeout: float,
        last_data: Callable[[], float],
        on_stale: Callable[[float], None],
        probe: Callable[[], None],
    ) -> None:
        self._interval = interval
        self._data_timeout = data_timeout
        self._last_data = last_data
        self._on_stale = on_stale
        self._probe = probe
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="witslink-health"
        )

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    def check(self) -> bool:
        """Run one check now.  Returns ``False`` if the link was stale."""
        idle = time.monotonic() - self._last_data()
        if idle > self._data_timeout:
            logger.warning("No data for %.0f s (limit %.0f s)", idle, self._data_timeout)
            self._on_stale(idle)
            return False
        try:
            self._probe()
        except Exception:
            logger.warning("Keep-alive probe failed", exc_info=True)
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if not self.check():
                return
