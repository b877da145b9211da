"""Camelot wheel model: key to wheel position mapping and harmonic compatibility."""

from typing import List, Optional, Tuple

from .models import WheelPosition

KEY_NAMES = ["C", "C#/Db", "D", "D#/Eb", "E", "F", "F#/Gb", "G", "G#/Ab", "A", "A#/Bb", "B"]

# Note spellings accepted from external sources -> pitch class
NOTE_TO_PITCH_CLASS = {
    "C": 0,
    "B#": 0,
    "C#": 1,
    "Db": 1,
    "D": 2,
    "D#": 3,
    "Eb": 3,
    "E": 4,
    "Fb": 4,
    "F": 5,
    "E#": 5,
    "F#": 6,
    "Gb": 6,
    "G": 7,
    "G#": 8,
    "Ab": 8,
    "A": 9,
    "A#": 10,
    "Bb": 10,
    "B": 11,
    "Cb": 11,
}

# Pitch class -> wheel slot. Relative keys share a slot (C major 8B, A minor 8A).
MAJOR_SLOTS = [8, 3, 10, 5, 12, 7, 2, 9, 4, 11, 6, 1]
MINOR_SLOTS = [5, 12, 7, 2, 9, 4, 11, 6, 1, 8, 3, 10]

# Slot offsets considered mixable, as (offset, same_polarity)
_COMPATIBLE_MOVES = (
    (0, True),  # same key
    (1, True),  # one step clockwise
    (-1, True),  # one step counter-clockwise
    (0, False),  # relative major/minor
    (7, True),  # +7 slots == -5 slots
    (5, True),  # +5 slots == -7 slots
    (1, False),  # diagonal energy boost
    (-1, False),  # diagonal energy drop
)


def wrap_slot(slot: int) -> int:
    """Wrap any integer onto the 1-12 circle (13 -> 1, 0 -> 12)."""
    return (slot - 1) % 12 + 1


def wheel_position(pitch_class: int, major: bool) -> WheelPosition:
    """Map a pitch class (0-11) and mode onto the Camelot wheel."""
    slots = MAJOR_SLOTS if major else MINOR_SLOTS
    return WheelPosition(slot=slots[pitch_class % 12], major=major)


def key_for_position(position: WheelPosition) -> Tuple[int, bool]:
    """Inverse of wheel_position: return (pitch_class, major)."""
    slots = MAJOR_SLOTS if position.major else MINOR_SLOTS
    return slots.index(position.slot), position.major


def compatibility_set(position: WheelPosition) -> List[WheelPosition]:
    """Return the 8 wheel positions that mix harmonically with ``position``.

    The first entry is always ``position`` itself.
    """
    return [
        WheelPosition(
            slot=wrap_slot(position.slot + offset),
            major=position.major if same else not position.major,
        )
        for offset, same in _COMPATIBLE_MOVES
    ]


def is_compatible(a: WheelPosition, b: WheelPosition) -> bool:
    """Check whether two wheel positions can be mixed together."""
    return b in compatibility_set(a)


def parse_wheel(text: str) -> Optional[WheelPosition]:
    """Parse Camelot notation ("8B", "11a"). Returns None for "Unknown" or bad input."""
    text = (text or "").strip().upper()
    if len(text) < 2 or text[-1] not in ("A", "B") or not text[:-1].isdigit():
        return None
    slot = int(text[:-1])
    if not 1 <= slot <= 12:
        return None
    return WheelPosition(slot=slot, major=text[-1] == "B")


def parse_note(note: Optional[str]) -> Optional[int]:
    """Parse a note name into a pitch class; None if unrecognized."""
    if note is None:
        return None
    note = str(note).strip()
    if not note:
        return None
    note = note[0].upper() + note[1:]
    return NOTE_TO_PITCH_CLASS.get(note)


def parse_scale(scale: Optional[str]) -> Optional[bool]:
    """Parse a scale name into a major flag; None if unrecognized."""
    if scale is None:
        return None
    scale = str(scale).strip().lower()
    if scale in ("major", "maj"):
        return True
    if scale in ("minor", "min"):
        return False
    return None


def key_name(pitch_class: Optional[int], major: Optional[bool]) -> str:
    """Human-readable key such as "C Major" or "A Minor"."""
    if pitch_class is None or major is None:
        return "Unknown"
    return f"{KEY_NAMES[pitch_class % 12]} {'Major' if major else 'Minor'}"
