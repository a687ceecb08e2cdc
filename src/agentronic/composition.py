from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from agentronic.errors import InvalidKeyError
from agentronic.pitch_classes import is_pitch_class_name, pitch_class_of

_TIME_SIGNATURE_RE = re.compile(r"^([1-9][0-9]*)/([1-9][0-9]*)$")


@dataclass(frozen=True)
class Note:
    """One sounding note.

    - ``pitch`` is an absolute MIDI semitone number (60 = middle C).
    - ``velocity`` is the note intensity from 0 to 127.
    - ``start_time`` / ``duration`` are in seconds.
    - ``midi_note`` and ``articulation`` are optional passthrough fields
      carried from ingestion.
    """

    pitch: int
    velocity: int
    start_time: float
    duration: float
    midi_note: int | None = None
    articulation: str | None = None

    def __post_init__(self) -> None:
        if not (0 <= self.velocity <= 127):
            raise ValueError("Note velocity must be in [0,127].")
        if self.start_time < 0:
            raise ValueError("Note start_time must be >= 0.")
        if self.duration <= 0:
            raise ValueError("Note duration must be > 0.")

    @property
    def pitch_class(self) -> int:
        return pitch_class_of(self.pitch)

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


@dataclass(frozen=True)
class Chord:
    """A chord symbol with its semitone offsets.

    ``notes`` holds offsets from C as produced by ``chord_notes`` and is not
    reduced modulo 12, so an A minor chord is ``(9, 12, 16)``.
    """

    root_note: str
    chord_type: str
    start_time: float
    duration: float
    notes: tuple[int, ...] = ()
    inversion: int | None = None

    def __post_init__(self) -> None:
        if not is_pitch_class_name(self.root_note):
            raise InvalidKeyError(self.root_note)
        if self.duration <= 0:
            raise ValueError("Chord duration must be > 0.")
        object.__setattr__(self, "notes", tuple(int(n) for n in self.notes))


@dataclass(frozen=True)
class Measure:
    measure_number: int
    time_signature: str = "4/4"
    tempo: float = 120.0
    start_time: float = 0.0
    duration: float = 1.0
    notes: tuple[Note, ...] = ()
    chords: tuple[Chord, ...] = ()

    def __post_init__(self) -> None:
        if self.measure_number < 1:
            raise ValueError("Measure measure_number must be >= 1.")
        if not _TIME_SIGNATURE_RE.match(self.time_signature):
            raise ValueError(f"Invalid time signature: {self.time_signature!r}")
        object.__setattr__(self, "notes", tuple(self.notes))
        object.__setattr__(self, "chords", tuple(self.chords))

    @property
    def beats_per_measure(self) -> int:
        return int(self.time_signature.split("/", 1)[0])


@dataclass(frozen=True)
class Part:
    id: str
    name: str
    instrument: str = "Unknown"
    measures: tuple[Measure, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "measures", tuple(self.measures))

    def notes(self) -> list[Note]:
        return flatten_notes(self.measures)


@dataclass(frozen=True)
class Composition:
    """Root aggregate: owns its parts, which own their measures."""

    id: str
    title: str
    parts: tuple[Part, ...] = ()
    duration: float = 0.0
    composer: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parts", tuple(self.parts))

    def measures(self) -> list[Measure]:
        return [measure for part in self.parts for measure in part.measures]

    def notes(self) -> list[Note]:
        return [note for part in self.parts for note in part.notes()]


def flatten_notes(measures: Iterable[Measure]) -> list[Note]:
    return [note for measure in measures for note in measure.notes]
