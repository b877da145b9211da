"""Tests for the Camelot wheel model."""

import pytest

from harmonizer.camelot import (
    compatibility_set,
    is_compatible,
    key_for_position,
    key_name,
    parse_note,
    parse_scale,
    parse_wheel,
    wheel_position,
    wrap_slot,
)
from harmonizer.models import WheelPosition

ALL_POSITIONS = [WheelPosition(slot, major) for slot in range(1, 13) for major in (True, False)]


class TestWheelPosition:
    def test_mapping_is_bijective(self):
        positions = {wheel_position(pc, major) for pc in range(12) for major in (True, False)}
        assert positions == set(ALL_POSITIONS)

    def test_c_major_and_a_minor_share_slot(self):
        assert str(wheel_position(0, True)) == "8B"
        assert str(wheel_position(9, False)) == "8A"

    def test_relative_keys_share_slot(self):
        for pc in range(12):
            relative_minor = (pc + 9) % 12
            assert wheel_position(pc, True).slot == wheel_position(relative_minor, False).slot

    def test_fifth_is_one_step_clockwise(self):
        for pc in range(12):
            here = wheel_position(pc, True)
            fifth = wheel_position((pc + 7) % 12, True)
            assert fifth.slot == wrap_slot(here.slot + 1)

    def test_inverse_lookup(self):
        for pc in range(12):
            for major in (True, False):
                assert key_for_position(wheel_position(pc, major)) == (pc, major)

    def test_invalid_slot_rejected(self):
        with pytest.raises(ValueError):
            WheelPosition(slot=13, major=True)


class TestCompatibilitySet:
    @pytest.mark.parametrize("position", ALL_POSITIONS, ids=str)
    def test_eight_entries_including_self(self, position):
        compatible = compatibility_set(position)
        assert len(compatible) == 8
        assert compatible[0] == position
        assert len(set(compatible)) == 8

    def test_neighbors_of_8b(self):
        names = [str(p) for p in compatibility_set(WheelPosition(8, True))]
        assert names == ["8B", "9B", "7B", "8A", "3B", "1B", "9A", "7A"]

    def test_wraparound_at_slot_12(self):
        names = [str(p) for p in compatibility_set(WheelPosition(12, False))]
        assert names == ["12A", "1A", "11A", "12B", "7A", "5A", "1B", "11B"]

    def test_wraparound_at_slot_1(self):
        names = [str(p) for p in compatibility_set(WheelPosition(1, True))]
        assert names == ["1B", "2B", "12B", "1A", "8B", "6B", "2A", "12A"]

    def test_compatibility_is_symmetric(self):
        for a in ALL_POSITIONS:
            for b in compatibility_set(a):
                assert is_compatible(b, a)

    def test_tritone_not_compatible(self):
        assert not is_compatible(WheelPosition(8, True), WheelPosition(2, True))


class TestParsing:
    def test_wrap_slot(self):
        assert wrap_slot(13) == 1
        assert wrap_slot(0) == 12
        assert wrap_slot(-1) == 11
        assert wrap_slot(12) == 12

    def test_parse_wheel(self):
        assert parse_wheel("8B") == WheelPosition(8, True)
        assert parse_wheel(" 11a ") == WheelPosition(11, False)
        assert parse_wheel("Unknown") is None
        assert parse_wheel("13A") is None
        assert parse_wheel("") is None

    def test_parse_note_handles_flats_and_case(self):
        assert parse_note("C") == 0
        assert parse_note("Db") == 1
        assert parse_note("c#") == 1
        assert parse_note("Bb") == 10
        assert parse_note("H") is None
        assert parse_note(None) is None

    def test_parse_scale(self):
        assert parse_scale("major") is True
        assert parse_scale("Minor") is False
        assert parse_scale("dorian") is None
        assert parse_scale(None) is None

    def test_key_name(self):
        assert key_name(0, True) == "C Major"
        assert key_name(10, False) == "A#/Bb Minor"
        assert key_name(None, True) == "Unknown"
