from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from agentronic.composition import Chord, Measure, Note
from agentronic.pitch_classes import DEFAULT_TEMPO_BPM, NOTE_NAMES

CONTOUR_BIAS = 1.5


def harmonic_progression(measures: Iterable[Measure]) -> list[Chord]:
    return [chord for measure in measures for chord in measure.chords]


def contour_counts(notes: Sequence[Note]) -> tuple[int, int, int]:
    """Return ``(ascending, descending, static)`` counts over adjacent note pairs."""
    if len(notes) < 2:
        return 0, 0, 0
    steps = np.diff(np.array([note.pitch for note in notes], dtype=np.int64))
    ascending = int(np.count_nonzero(steps > 0))
    descending = int(np.count_nonzero(steps < 0))
    return ascending, descending, int(steps.size) - ascending - descending


def melodic_contour(notes: Sequence[Note]) -> str:
    if len(notes) < 2:
        return "static"
    ascending, descending, _static = contour_counts(notes)
    if ascending > descending * CONTOUR_BIAS:
        return "ascending"
    if descending > ascending * CONTOUR_BIAS:
        return "descending"
    return "mixed"


def pitch_class_histogram(notes: Iterable[Note]) -> list[int]:
    pitch_classes = np.array([note.pitch % 12 for note in notes], dtype=np.int64)
    return [int(count) for count in np.bincount(pitch_classes, minlength=12)]


def detect_key(notes: Iterable[Note]) -> str:
    # argmax returns the first maximum, so ties go to the lowest pitch class.
    histogram = pitch_class_histogram(notes)
    return NOTE_NAMES[int(np.argmax(histogram))]


def average_tempo(measures: Iterable[Measure], default_bpm: float = DEFAULT_TEMPO_BPM) -> float:
    tempos = [float(measure.tempo) for measure in measures if measure.tempo > 0]
    if not tempos:
        return default_bpm
    return float(np.mean(tempos))
