from __future__ import annotations

from agentronic.errors import InvalidKeyError

NOTE_NAMES: tuple[str, ...] = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")
MAJOR_SCALE_INTERVALS: tuple[int, ...] = (0, 2, 4, 5, 7, 9, 11)
MIDDLE_OCTAVE_PITCH = 60
DEFAULT_TEMPO_BPM = 120.0

_NAME_TO_INDEX = {name: idx for idx, name in enumerate(NOTE_NAMES)}


def pitch_class_index(name: str) -> int:
    """Semitone offset of ``name`` from C, e.g. ``"A"`` -> 9."""
    try:
        return _NAME_TO_INDEX[name]
    except (KeyError, TypeError):
        raise InvalidKeyError(name) from None


def pitch_class_of(pitch: int) -> int:
    return int(pitch) % 12


def pitch_class_name(pitch: int) -> str:
    return NOTE_NAMES[pitch_class_of(pitch)]


def is_pitch_class_name(name: object) -> bool:
    return isinstance(name, str) and name in _NAME_TO_INDEX
