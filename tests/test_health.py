"""Tests for HealthMonitor."""

from __future__ import annotations

import logging
import time
from unittest.mock import MagicMock

import pytest

from tests.conftest import wait_until
from witslink.health import HealthMonitor


def _monitor(
    last: float, probe: MagicMock | None = None
) -> tuple[HealthMonitor, MagicMock, MagicMock]:
    on_stale = MagicMock()
    probe = probe or MagicMock()
    monitor = HealthMonitor(
        interval=0.01,
        data_timeout=1.0,
        last_data=lambda: last,
        on_stale=on_stale,
        probe=probe,
    )
    return monitor, on_stale, probe


class TestHealthMonitor:
    def test_fresh_link_is_probed(self) -> None:
        monitor, on_stale, probe = _monitor(time.monotonic())
        assert monitor.check() is True
        probe.assert_called_once_with()
        on_stale.assert_not_called()

    def test_stale_link_reported(self) -> None:
        monitor, on_stale, probe = _monitor(time.monotonic() - 5)
        assert monitor.check() is False
        on_stale.assert_called_once()
        assert on_stale.call_args.args[0] >= 5
        probe.assert_not_called()

    def test_probe_failure_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        monitor, _, _ = _monitor(time.monotonic(), probe=MagicMock(side_effect=OSError("x")))
        with caplog.at_level(logging.WARNING, logger="witslink.health"):
            assert monitor.check() is True
        assert "Keep-alive probe failed" in caplog.text

    async def test_runs_periodically_until_stopped(self) -> None:
        monitor, _, probe = _monitor(time.monotonic())
        monitor.start()
        assert monitor.running
        await wait_until(lambda: probe.call_count >= 3)
        monitor.stop()
        assert not monitor.running

    async def test_stops_after_stale(self) -> None:
        monitor, on_stale, _ = _monitor(time.monotonic() - 5)
        monitor.start()
        await wait_until(lambda: on_stale.called)
        await wait_until(lambda: not monitor.running)
        on_stale.assert_called_once()
