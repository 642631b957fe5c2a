"""Shared fixtures for CLI execution tests."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate AppSettings from the developer's environment and ``.env``."""
    for key in list(os.environ):
        if key.startswith("WITSLINK_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def noralis_capture(tmp_path: Path) -> Path:
    path = tmp_path / "capture.txt"
    path.write_bytes(b"01 100 07 12.5\r\n02 200\r\n")
    return path


@pytest.fixture()
def mapping_file(tmp_path: Path) -> Path:
    path = tmp_path / "mappings.json"
    path.write_text(
        json.dumps(
            {
                "drilling": [{"name": "WOB", "channel": 7, "unit": "klbf"}],
                "directional": [{"name": "Bit Depth", "witsId": 1, "channel": 101}],
            }
        )
    )
    return path
