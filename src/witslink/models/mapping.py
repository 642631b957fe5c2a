"""Channel mapping tables.

A mapping table associates semantic field names (``"Bit Depth"``,
``"WOB"``) with raw WITS channel ids.  Tables are produced by the
configuration layer outside this package and are read-only here.

Example file::

    {
      "drilling": [
        {"name": "Bit Depth", "witsId": 8, "channel": 8, "unit": "ft"},
        {"name": "WOB", "channel": 7}
      ],
      "directional": [{"name": "Inclination", "witsId": 71}],
      "custom": []
    }
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from witslink.errors import ConfigError


class MappingEntry(BaseModel):
    """One semantic field → raw channel association."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    wits_id: int | None = Field(default=None, alias="witsId")
    channel: int | None = None
    unit: str | None = None


class MappingTable(BaseModel):
    """Grouped mapping entries, applied drilling → directional → custom."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    drilling: list[MappingEntry] = Field(default_factory=list)
    directional: list[MappingEntry] = Field(default_factory=list)
    custom: list[MappingEntry] = Field(default_factory=list)

    def entries(self) -> Iterator[MappingEntry]:
        """Yield every entry in application order."""
        yield from self.drilling
        yield from self.directional
        yield from self.custom

    def __len__(self) -> int:
        return len(self.drilling) + len(self.directional) + len(self.custom)

    @classmethod
    def load(cls, path: Path | str) -> MappingTable:
        """Load a table from a JSON file.

        A missing file yields an empty table.  Raises :class:`ConfigError`
        when the file exists but is not a valid mapping document.
        """
        resolved = Path(path).expanduser()
        if not resolved.exists():
            return cls()

        try:
            raw = json.loads(resolved.read_text(encoding="utf-8"))
            return cls.model_validate(raw)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ConfigError(f"Invalid mapping file {resolved}: {exc}") from exc
