"""JSON rendering: pretty envelopes for one-shot commands, compact event lines for ``listen``."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from witslink.telemetry.frames import TelemetryFrame


def _jsonable(obj: Any) -> Any:
    # Frames flatten to their wire keys; models dump by alias so mapping
    # files round-trip as ``witsId``.
    if isinstance(obj, TelemetryFrame):
        return obj.to_dict()
    if isinstance(obj, BaseModel):
        return obj.model_dump(by_alias=True, exclude_none=True, mode="json")
    if isinstance(obj, list | tuple):
        return [_jsonable(item) for item in obj]
    return obj


def _envelope(command: str, ok: bool, key: str, body: Any) -> str:
    return json.dumps(
        {
            "ok": ok,
            "command": command,
            key: body,
            "timestamp": datetime.now(UTC).isoformat(),
        },
        indent=2,
        default=str,
    )


def format_json_response(*, data: Any, command: str) -> str:
    """``{"ok": true, "command": ..., "data": ..., "timestamp": ...}``"""
    return _envelope(command, True, "data", _jsonable(data))


def format_json_error(*, code: str, message: str, command: str, **extra: Any) -> str:
    """``{"ok": false, "command": ..., "error": {"code", "message", ...}, "timestamp": ...}``"""
    return _envelope(command, False, "error", {"code": code, "message": message, **extra})


def format_json_event(event: str, data: Any) -> str:
    """One line per streamed event: ``{"event": "frame", "data": {...}}``."""
    return json.dumps({"event": event, "data": _jsonable(data)}, default=str)
