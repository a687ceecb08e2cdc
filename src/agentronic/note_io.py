from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from agentronic.composition import Chord, Composition, Measure, Note, Part


def note_from_dict(item: Mapping[str, Any]) -> Note:
    if item.get("pitch") is None:
        raise ValueError("Note object is missing 'pitch'.")
    midi_note = item.get("midiNote")
    return Note(
        pitch=int(item["pitch"]),
        velocity=int(item.get("velocity", 64)),
        start_time=float(item.get("startTime", 0.0)),
        duration=float(item.get("duration", 1.0)),
        midi_note=int(midi_note) if midi_note is not None else None,
        articulation=item.get("articulation"),
    )


def note_to_dict(note: Note) -> dict[str, Any]:
    out: dict[str, Any] = {
        "pitch": note.pitch,
        "velocity": note.velocity,
        "startTime": note.start_time,
        "duration": note.duration,
    }
    if note.midi_note is not None:
        out["midiNote"] = note.midi_note
    if note.articulation is not None:
        out["articulation"] = note.articulation
    return out


def chord_from_dict(item: Mapping[str, Any]) -> Chord:
    if item.get("rootNote") is None:
        raise ValueError("Chord object is missing 'rootNote'.")
    inversion = item.get("inversion")
    return Chord(
        root_note=item["rootNote"],
        chord_type=item.get("chordType", "major"),
        start_time=float(item.get("startTime", 0.0)),
        duration=float(item.get("duration", 1.0)),
        notes=tuple(int(n) for n in item.get("notes", ())),
        inversion=int(inversion) if inversion is not None else None,
    )


def chord_to_dict(chord: Chord) -> dict[str, Any]:
    out: dict[str, Any] = {
        "rootNote": chord.root_note,
        "chordType": chord.chord_type,
        "startTime": chord.start_time,
        "duration": chord.duration,
        "notes": list(chord.notes),
    }
    if chord.inversion is not None:
        out["inversion"] = chord.inversion
    return out


def measure_from_dict(item: Mapping[str, Any]) -> Measure:
    number = item.get("measureNumber", item.get("number", 1))
    return Measure(
        measure_number=int(number),
        time_signature=str(item.get("timeSignature", "4/4")),
        tempo=float(item.get("tempo", 120.0)),
        start_time=float(item.get("startTime", 0.0)),
        duration=float(item.get("duration", 1.0)),
        notes=tuple(note_from_dict(n) for n in item.get("notes", ())),
        chords=tuple(chord_from_dict(c) for c in item.get("chords", ())),
    )


def measure_to_dict(measure: Measure) -> dict[str, Any]:
    return {
        "measureNumber": measure.measure_number,
        "timeSignature": measure.time_signature,
        "tempo": measure.tempo,
        "startTime": measure.start_time,
        "duration": measure.duration,
        "notes": [note_to_dict(n) for n in measure.notes],
        "chords": [chord_to_dict(c) for c in measure.chords],
    }


def part_from_dict(item: Mapping[str, Any], default_id: str = "P1") -> Part:
    return Part(
        id=str(item.get("id", default_id)),
        name=str(item.get("name", default_id)),
        instrument=str(item.get("instrument", "Unknown")),
        measures=tuple(measure_from_dict(m) for m in item.get("measures", ())),
    )


def part_to_dict(part: Part) -> dict[str, Any]:
    return {
        "id": part.id,
        "name": part.name,
        "instrument": part.instrument,
        "measures": [measure_to_dict(m) for m in part.measures],
    }


def composition_from_dict(item: Mapping[str, Any]) -> Composition:
    return Composition(
        id=str(item.get("id", "")),
        title=str(item.get("title", "Untitled")),
        parts=tuple(part_from_dict(p, default_id=f"P{idx + 1}") for idx, p in enumerate(item.get("parts", ()))),
        duration=float(item.get("duration", 0.0)),
        composer=item.get("composer"),
        metadata=dict(item.get("metadata") or {}),
    )


def composition_to_dict(composition: Composition) -> dict[str, Any]:
    return {
        "id": composition.id,
        "title": composition.title,
        "composer": composition.composer,
        "parts": [part_to_dict(p) for p in composition.parts],
        "duration": composition.duration,
        "metadata": dict(composition.metadata),
    }


def to_jsonable(value: Any) -> Any:
    """Convert generation/analysis records holding model objects into plain JSON values."""
    if isinstance(value, Note):
        return note_to_dict(value)
    if isinstance(value, Chord):
        return chord_to_dict(value)
    if isinstance(value, Measure):
        return measure_to_dict(value)
    if isinstance(value, Part):
        return part_to_dict(value)
    if isinstance(value, Composition):
        return composition_to_dict(value)
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def load_notes_json(path: str | Path) -> list[Note]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError("Notes JSON must be a list.")
    notes: list[Note] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValueError(f"Notes JSON item {idx} must be an object.")
        if item.get("pitch") is None:
            raise ValueError(f"Notes JSON item {idx} is missing 'pitch'.")
        notes.append(note_from_dict(item))
    # Stable sort: notes sharing a start time keep their input order.
    notes.sort(key=lambda n: n.start_time)
    return notes


def load_composition_json(path: str | Path) -> Composition:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("Composition JSON must be an object.")
    return composition_from_dict(raw)
