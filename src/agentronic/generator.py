from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Mapping, Sequence

import numpy as np

from agentronic.composition import Chord, Note
from agentronic.errors import UnsupportedGenerationTypeError
from agentronic.pitch_classes import MAJOR_SCALE_INTERVALS, MIDDLE_OCTAVE_PITCH, NOTE_NAMES, pitch_class_index

STEP_SECONDS = 0.5
CHORD_SECONDS = 2.0
MIN_VELOCITY = 64
MAX_VELOCITY = 95
DEFAULT_PROGRESSION: tuple[str, ...] = ("I", "IV", "V", "I")
DEFAULT_INSTRUMENTS: tuple[str, ...] = ("violin", "viola", "cello")

# Root offsets of the I, IV and V degrees of a major key.
_PRIMARY_TRIAD_DEGREES = (0, 5, 7, 0)


class GenerationType(str, Enum):
    MELODY = "melody"
    HARMONY = "harmony"
    ORCHESTRATION = "orchestration"

    @classmethod
    def parse(cls, value: "str | GenerationType") -> "GenerationType":
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedGenerationTypeError(value) from None


def scale_for(key: str) -> list[int]:
    offset = pitch_class_index(key)
    return [(offset + interval) % 12 for interval in MAJOR_SCALE_INTERVALS]


def chord_notes(root: str, chord_type: str) -> list[int]:
    root_pitch = pitch_class_index(root)
    if chord_type == "major":
        return [root_pitch, root_pitch + 4, root_pitch + 7]
    if chord_type == "minor":
        return [root_pitch, root_pitch + 3, root_pitch + 7]
    return [root_pitch]


def generate_melody(key: str, length: int, rng: np.random.Generator | None = None) -> list[Note]:
    if length < 0:
        raise ValueError("Melody length must be >= 0.")
    scale = scale_for(key)
    rng = rng if rng is not None else np.random.default_rng()
    degrees = rng.integers(0, len(scale), size=length)
    velocities = rng.integers(MIN_VELOCITY, MAX_VELOCITY + 1, size=length)

    notes: list[Note] = []
    for i in range(length):
        pitch = scale[int(degrees[i])] + MIDDLE_OCTAVE_PITCH
        notes.append(
            Note(
                pitch=pitch,
                velocity=int(velocities[i]),
                start_time=i * STEP_SECONDS,
                duration=STEP_SECONDS,
                midi_note=pitch,
            )
        )
    return notes


def harmonize(melody: Sequence[Note], key: str = "C") -> list[Chord]:
    """Return an I-IV-V-I progression in ``key``.

    The melody is accepted for interface symmetry but its pitches are not
    consulted: the progression is the same for every melody.
    """
    tonic = pitch_class_index(key)
    chords: list[Chord] = []
    for i, degree in enumerate(_PRIMARY_TRIAD_DEGREES):
        root = NOTE_NAMES[(tonic + degree) % 12]
        chords.append(
            Chord(
                root_note=root,
                chord_type="major",
                start_time=i * CHORD_SECONDS,
                duration=CHORD_SECONDS,
                notes=tuple(chord_notes(root, "major")),
            )
        )
    return chords


def generate_harmony(key: str = "C", progression: Sequence[str] = DEFAULT_PROGRESSION) -> dict[str, Any]:
    # Numerals only set the chord count; every chord is the tonic major triad.
    triad = tuple(chord_notes(key, "major"))
    chords = [
        Chord(
            root_note=key,
            chord_type="major",
            start_time=i * CHORD_SECONDS,
            duration=CHORD_SECONDS,
            notes=triad,
        )
        for i in range(len(progression))
    ]
    return {
        "chords": chords,
        "duration": len(progression) * CHORD_SECONDS,
        "metadata": {"key": key, "progression": list(progression)},
    }


def generate_melody_record(
    key: str = "C",
    length: int = 16,
    style: str = "classical",
    rng: np.random.Generator | None = None,
) -> dict[str, Any]:
    return {
        "notes": generate_melody(key, length, rng=rng),
        "duration": length * STEP_SECONDS,
        "metadata": {"key": key, "style": style, "noteCount": length},
    }


def generate_orchestration(
    instruments: Sequence[str] = DEFAULT_INSTRUMENTS,
    length: int = 16,
    rng: np.random.Generator | None = None,
) -> dict[str, Any]:
    rng = rng if rng is not None else np.random.default_rng()
    parts = [
        {
            "name": instrument,
            "instrument": instrument,
            "partNumber": idx + 1,
            "notes": generate_melody("C", length, rng=rng),
        }
        for idx, instrument in enumerate(instruments)
    ]
    return {
        "parts": parts,
        "duration": length * STEP_SECONDS,
        "metadata": {"instruments": list(instruments)},
    }


def _as_tuple(value: Any) -> tuple[Any, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def _melody_from_params(params: Mapping[str, Any], rng: np.random.Generator | None) -> dict[str, Any]:
    return generate_melody_record(
        key=params.get("key", "C"),
        length=int(params.get("length", 16)),
        style=params.get("style", "classical"),
        rng=rng,
    )


def _harmony_from_params(params: Mapping[str, Any], rng: np.random.Generator | None) -> dict[str, Any]:
    return generate_harmony(
        key=params.get("key", "C"),
        progression=_as_tuple(params.get("progression", DEFAULT_PROGRESSION)),
    )


def _orchestration_from_params(params: Mapping[str, Any], rng: np.random.Generator | None) -> dict[str, Any]:
    return generate_orchestration(
        instruments=_as_tuple(params.get("instruments", DEFAULT_INSTRUMENTS)),
        length=int(params.get("length", 16)),
        rng=rng,
    )


_GENERATORS: dict[GenerationType, Callable[[Mapping[str, Any], np.random.Generator | None], dict[str, Any]]] = {
    GenerationType.MELODY: _melody_from_params,
    GenerationType.HARMONY: _harmony_from_params,
    GenerationType.ORCHESTRATION: _orchestration_from_params,
}


def generate(
    generation_type: "str | GenerationType",
    parameters: Mapping[str, Any],
    rng: np.random.Generator | None = None,
) -> dict[str, Any]:
    kind = GenerationType.parse(generation_type)
    return _GENERATORS[kind](parameters, rng)
