"""Format selection for command results and streamed ``listen`` events."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

from rich.console import Console

from witslink.output.json_output import (
    format_json_error,
    format_json_event,
    format_json_response,
)
from witslink.output.rich_output import RichOutput

if TYPE_CHECKING:
    from io import TextIOBase

    from witslink.telemetry.frames import TelemetryFrame

FORMATS = ("rich", "json", "quiet")


def _detect_format(stream: Any) -> str:
    isatty = getattr(stream, "isatty", None)
    return "rich" if isatty is not None and isatty() else "json"


class OutputFormatter:
    """Routes output to JSON lines/envelopes or Rich renderables.

    A forced format wins; otherwise a TTY *stream* gets ``"rich"`` and a
    pipe gets ``"json"``.  ``"quiet"`` drops frames and sends everything
    else to stderr, leaving stdout empty.
    """

    def __init__(
        self,
        *,
        stream: TextIOBase | Any | None = None,
        force_format: str | None = None,
    ) -> None:
        self._stream = stream or sys.stdout
        self._format = force_format if force_format is not None else _detect_format(self._stream)
        self._console = Console(stderr=self._format == "quiet")
        self._rich = RichOutput(self._console)

    @property
    def format(self) -> str:  # noqa: A003
        return self._format

    @property
    def rich(self) -> RichOutput:
        return self._rich

    @property
    def is_json(self) -> bool:
        return self._format == "json"

    def _write(self, line: str) -> None:
        self._stream.write(line + "\n")
        self._stream.flush()

    def output(self, data: Any, *, command: str) -> None:
        """Emit a command result; non-JSON formats get a plain ``str()``."""
        if self.is_json:
            self._write(format_json_response(data=data, command=command))
        else:
            self._rich.info(str(data))

    def output_error(self, *, code: str, message: str, command: str) -> None:
        if self.is_json:
            self._write(format_json_error(code=code, message=message, command=command))
        else:
            self._rich.error(message)

    # -- listen ------------------------------------------------------------

    def frame(self, frame: TelemetryFrame) -> None:
        if self.is_json:
            self._write(format_json_event("frame", frame))
        elif self._format == "rich":
            self._rich.frame(frame)

    def connection(self, connected: bool) -> None:
        if self.is_json:
            self._write(format_json_event("connection", {"connected": connected}))
        else:
            self._rich.connection(connected)

    def status(self, message: str | None) -> None:
        """Report a client status or error line; ``None`` (cleared) prints nothing."""
        if message is None:
            return
        if self.is_json:
            self._write(format_json_event("status", {"message": message}))
        else:
            self._rich.status(message)
