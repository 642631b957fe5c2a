"""Delimiter framing for byte streams.

Chunks arrive with no regard for record boundaries: one chunk may hold
several records, and one record may span several chunks.  The buffer keeps
the unterminated tail between calls and only releases delimiter-terminated
records.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class RecordBuffer:
    """Accumulates stream text and splits it into complete records."""

    def __init__(self, delimiter: str, *, max_residual: int | None = None) -> None:
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        self._delimiter = delimiter
        self._max_residual = max_residual
        self._residual = ""

    @property
    def delimiter(self) -> str:
        return self._delimiter

    @property
    def residual(self) -> str:
        """Text received after the last delimiter."""
        return self._residual

    def append(self, chunk: bytes | str) -> None:
        """Add *chunk* to the residual.  Bytes are decoded as ASCII."""
        if isinstance(chunk, bytes | bytearray):
            chunk = bytes(chunk).decode("ascii", errors="replace")
        self._residual += chunk

    def drain_records(self, *, final: bool = False) -> list[str]:
        """Return all complete records and keep the trailing partial one.

        With *final* the residual is treated as terminated too (message
        boundary) and the buffer is left empty.  Empty segments are
        returned as-is; callers skip blank records.
        """
        parts = self._residual.split(self._delimiter)
        self._residual = "" if final else parts.pop()
        if final and parts and parts[-1] == "":
            parts.pop()

        if self._max_residual is not None and len(self._residual) > self._max_residual:
            keep = self._max_residual // 2
            logger.warning(
                "Buffer exceeds %d chars without a delimiter, keeping the last %d",
                self._max_residual,
                keep,
            )
            self._residual = self._residual[-keep:]

        return parts

    def reset(self) -> None:
        """Discard any buffered partial record."""
        self._residual = ""
