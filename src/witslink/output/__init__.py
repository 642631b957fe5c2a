from __future__ import annotations

from witslink.output.formatter import OutputFormatter

__all__ = ["OutputFormatter"]
