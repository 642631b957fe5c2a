from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.table import Table

if TYPE_CHECKING:
    from rich.console import Console

    from witslink.models.mapping import MappingTable
    from witslink.telemetry.frames import TelemetryFrame


def _fmt_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


class RichOutput:
    """Rich-based terminal output helpers for *witslink*."""

    def __init__(self, console: Console) -> None:
        self._con = console

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------

    def frame(self, frame: TelemetryFrame) -> None:
        """Print one frame as a two-column table (named fields first)."""
        table = Table(title=f"{frame.source} @ {frame.timestamp}")
        table.add_column("Field", style="cyan")
        table.add_column("Value", justify="right")

        named = [k for k in frame.values if isinstance(k, str)]
        channels = sorted(k for k in frame.values if isinstance(k, int))
        for key in named:
            table.add_row(key, _fmt_value(frame.values[key]))
        for key in channels:
            table.add_row(f"[dim]{key:02d}[/dim]", _fmt_value(frame.values[key]))
        for key, value in frame.attributes.items():
            table.add_row(f"[dim]{key}[/dim]", _fmt_value(value))

        self._con.print(table)

    def frame_summary(self, frames: list[TelemetryFrame]) -> None:
        """Print a compact one-row-per-frame table."""
        table = Table(title=f"Frames ({len(frames)})")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Timestamp")
        table.add_column("Source")
        table.add_column("Values")

        for i, frame in enumerate(frames, start=1):
            values = ", ".join(f"{k}={_fmt_value(v)}" for k, v in frame.values.items())
            table.add_row(str(i), frame.timestamp, frame.source, values)

        self._con.print(table)

    # ------------------------------------------------------------------
    # Mapping tables
    # ------------------------------------------------------------------

    def mapping_table(self, mappings: MappingTable) -> None:
        """Print every mapping entry, grouped by section."""
        table = Table(title="Channel Mappings")
        table.add_column("Section", style="bold")
        table.add_column("Name")
        table.add_column("WITS ID", justify="right")
        table.add_column("Channel", justify="right")
        table.add_column("Unit")

        for section in ("drilling", "directional", "custom"):
            for entry in getattr(mappings, section):
                table.add_row(
                    section,
                    entry.name,
                    str(entry.wits_id) if entry.wits_id is not None else "",
                    str(entry.channel) if entry.channel is not None else "",
                    entry.unit or "",
                )

        self._con.print(table)

    # ------------------------------------------------------------------
    # Connection status helpers
    # ------------------------------------------------------------------

    def connection(self, connected: bool) -> None:
        """Print a coloured connected / disconnected indicator."""
        if connected:
            self._con.print("[green]CONNECTED[/green]")
        else:
            self._con.print("[yellow]DISCONNECTED[/yellow]")

    def status(self, message: str) -> None:
        """Print a dimmed status line."""
        self._con.print(f"[dim]{message}[/dim]")

    def error(self, message: str) -> None:
        """Print a bold red error line."""
        self._con.print(f"[bold red]Error:[/bold red] {message}")

    def info(self, message: str) -> None:
        """Print an informational message (plain)."""
        self._con.print(message)
