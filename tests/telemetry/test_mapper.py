"""Tests for channel → field-name mapping."""

from __future__ import annotations

import pytest

from witslink.models.mapping import MappingEntry, MappingTable
from witslink.telemetry.frames import RawChannelMap
from witslink.telemetry.mapper import ChannelMapper, apply_mappings, to_camel_case


def _raw(channels: dict) -> RawChannelMap:
    return RawChannelMap(
        channels=channels,
        source="wits",
        timestamp="2024-07-01T12:00:00+00:00",
        attributes={"wellId": "W-1"},
    )


class TestToCamelCase:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Bit Depth", "bitDepth"),
            ("hook load", "hookLoad"),
            ("WOB", "wOB"),
            ("Rate  of   Penetration", "rateOfPenetration"),
            ("wob", "wob"),
            ("", ""),
        ],
    )
    def test_conversion(self, name: str, expected: str) -> None:
        assert to_camel_case(name) == expected


class TestApplyMappings:
    def test_no_table_passes_channels_through(self) -> None:
        raw = _raw({1: 2.0, 3: 4.0})
        frame = apply_mappings(raw, None)
        assert frame.values == {1: 2.0, 3: 4.0}
        assert frame.source == "wits"
        assert frame.timestamp == "2024-07-01T12:00:00+00:00"
        assert frame.attributes == {"wellId": "W-1"}

    def test_frame_is_a_read_only_copy(self) -> None:
        raw = _raw({1: 2.0})
        frame = apply_mappings(raw, None)
        with pytest.raises(TypeError):
            frame.values["x"] = 1  # type: ignore[index]
        with pytest.raises(TypeError):
            frame.attributes["y"] = 2  # type: ignore[index]
        raw.channels[1] = 9.0
        assert frame[1] == 2.0

    def test_channel_entry(self) -> None:
        table = MappingTable(drilling=[MappingEntry(name="wob", channel=7)])
        frame = apply_mappings(_raw({7: 12.5}), table)
        assert frame.values == {7: 12.5, "wob": 12.5}

    def test_wits_id_entry_also_writes_channel(self) -> None:
        table = MappingTable(
            drilling=[MappingEntry(name="Bit Depth", wits_id=8, channel=108)]
        )
        frame = apply_mappings(_raw({8: 9123.0}), table)
        assert frame["bitDepth"] == 9123.0
        assert frame[108] == 9123.0
        assert frame[8] == 9123.0

    def test_wits_id_preferred_over_channel(self) -> None:
        table = MappingTable(drilling=[MappingEntry(name="Hook Load", wits_id=10, channel=11)])
        frame = apply_mappings(_raw({10: 1.0, 11: 2.0}), table)
        assert frame["hookLoad"] == 1.0

    def test_falls_back_to_channel_when_wits_id_missing(self) -> None:
        table = MappingTable(drilling=[MappingEntry(name="Hook Load", wits_id=10, channel=11)])
        frame = apply_mappings(_raw({11: 2.0}), table)
        assert frame["hookLoad"] == 2.0

    def test_missing_channels_skipped(self) -> None:
        table = MappingTable(
            drilling=[MappingEntry(name="a", channel=1)],
            directional=[MappingEntry(name="b", wits_id=2)],
            custom=[MappingEntry(name="c")],
        )
        frame = apply_mappings(_raw({3: 3.0}), table)
        assert frame.values == {3: 3.0}

    def test_sections_applied_in_order(self) -> None:
        table = MappingTable(
            drilling=[MappingEntry(name="depth", channel=1)],
            custom=[MappingEntry(name="depth", channel=2)],
        )
        frame = apply_mappings(_raw({1: 10.0, 2: 20.0}), table)
        assert frame["depth"] == 20.0

    def test_named_wits1_keys_survive(self) -> None:
        table = MappingTable(drilling=[MappingEntry(name="wob", channel=7)])
        frame = apply_mappings(_raw({7: 1.0, "rigState": "drilling"}), table)
        assert frame["rigState"] == "drilling"


class TestChannelMapper:
    def test_update_swaps_table(self) -> None:
        mapper = ChannelMapper()
        assert mapper.apply(_raw({7: 1.0})).values == {7: 1.0}

        mapper.update(MappingTable(drilling=[MappingEntry(name="wob", channel=7)]))
        assert mapper.apply(_raw({7: 1.0}))["wob"] == 1.0

        mapper.update(None)
        assert mapper.table is None
        assert "wob" not in mapper.apply(_raw({7: 1.0}))
