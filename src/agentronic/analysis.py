from __future__ import annotations

import math
from enum import Enum
from typing import Any, Callable, Sequence

import numpy as np

from agentronic.analyzer import contour_counts, detect_key, melodic_contour, pitch_class_histogram
from agentronic.composition import Note
from agentronic.errors import EmptyInputError, UnsupportedAnalysisTypeError


class AnalysisType(str, Enum):
    HARMONIC = "harmonic"
    MELODIC = "melodic"
    STRUCTURAL = "structural"
    PERFORMANCE = "performance"

    @classmethod
    def parse(cls, value: "str | AnalysisType") -> "AnalysisType":
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedAnalysisTypeError(value) from None


STRUCTURAL_SECTIONS: tuple[dict[str, Any], ...] = (
    {"name": "Intro", "measures": "1-8", "duration": 16},
    {"name": "Verse", "measures": "9-24", "duration": 32},
    {"name": "Chorus", "measures": "25-40", "duration": 32},
)


def analyze_harmonic(notes: Sequence[Note]) -> dict[str, Any]:
    key = detect_key(notes)
    return {
        "keySignature": key,
        "chordProgression": ["I", "IV", "V", "I"],
        "harmonicComplexity": 0.72,
        "tonalCenter": key,
        "pitchClassDistribution": pitch_class_histogram(notes),
    }


def analyze_melodic(notes: Sequence[Note]) -> dict[str, Any]:
    ascending, descending, static = contour_counts(notes)
    total = ascending + descending + static
    return {
        "contour": melodic_contour(notes),
        "intervalDiversity": 0.65,
        "ascendingRatio": ascending / total if total > 0 else 0,
        "descendingRatio": descending / total if total > 0 else 0,
        "staticRatio": static / total if total > 0 else 0,
        "averageInterval": 2.3,
    }


def analyze_structural(notes: Sequence[Note]) -> dict[str, Any]:
    return {
        "sections": [dict(section) for section in STRUCTURAL_SECTIONS],
        "form": "ABA",
        "repetitionIndex": 0.45,
        "phraseLength": 8,
    }


def analyze_performance(notes: Sequence[Note]) -> dict[str, Any]:
    if len(notes) == 0:
        raise EmptyInputError("Performance analysis requires at least one note.")
    velocities = np.array([note.velocity for note in notes], dtype=np.float64)
    return {
        # Halves round up rather than to even.
        "averageVelocity": int(math.floor(float(np.mean(velocities)) + 0.5)),
        "dynamicRange": int(velocities.max() - velocities.min()),
        "articulation": "legato",
        "expressiveness": 0.78,
        "timingVariation": 0.05,
    }


_ANALYZERS: dict[AnalysisType, Callable[[Sequence[Note]], dict[str, Any]]] = {
    AnalysisType.HARMONIC: analyze_harmonic,
    AnalysisType.MELODIC: analyze_melodic,
    AnalysisType.STRUCTURAL: analyze_structural,
    AnalysisType.PERFORMANCE: analyze_performance,
}


def analyze(analysis_type: "str | AnalysisType", notes: Sequence[Note]) -> dict[str, Any]:
    kind = AnalysisType.parse(analysis_type)
    return _ANALYZERS[kind](notes)
