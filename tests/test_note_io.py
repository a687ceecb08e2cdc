import json
import tempfile
import unittest
from pathlib import Path

from agentronic.analyzer import melodic_contour
from agentronic.composition import Chord, Note
from agentronic.note_io import (
    composition_from_dict,
    composition_to_dict,
    load_composition_json,
    load_notes_json,
    note_to_dict,
    to_jsonable,
)


class TestNoteIo(unittest.TestCase):
    def test_load_notes_json(self) -> None:
        payload = (
            '[{"pitch": 64, "velocity": 90, "startTime": 0.5, "duration": 0.5, "articulation": "staccato"},'
            ' {"pitch": 60, "startTime": 0.0, "duration": 0.5}]'
        )
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "notes.json"
            p.write_text(payload, encoding="utf-8")
            notes = load_notes_json(p)

        self.assertEqual(len(notes), 2)
        self.assertEqual(notes[0].pitch, 60)
        self.assertEqual(notes[1].pitch, 64)
        self.assertEqual(notes[0].velocity, 64)
        self.assertIsNone(notes[0].articulation)
        self.assertEqual(notes[1].articulation, "staccato")

    def test_load_notes_json_rejects_non_list(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "notes.json"
            p.write_text('{"pitch": 60}', encoding="utf-8")
            with self.assertRaises(ValueError):
                load_notes_json(p)

    def test_load_notes_json_keeps_input_order_for_equal_start_times(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "notes.json"
            p.write_text('[{"pitch": 72}, {"pitch": 67}, {"pitch": 60}]', encoding="utf-8")
            notes = load_notes_json(p)

        self.assertEqual([n.pitch for n in notes], [72, 67, 60])
        self.assertEqual(melodic_contour(notes), "descending")

    def test_load_notes_json_rejects_item_without_pitch(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "notes.json"
            p.write_text('[{"pitch": 60}, {"velocity": 70}]', encoding="utf-8")
            with self.assertRaisesRegex(ValueError, "item 1 is missing 'pitch'"):
                load_notes_json(p)

    def test_chord_without_root_is_rejected(self) -> None:
        with self.assertRaisesRegex(ValueError, "rootNote"):
            composition_from_dict({"parts": [{"measures": [{"chords": [{"chordType": "minor"}]}]}]})

    def test_load_composition_json(self) -> None:
        payload = {
            "id": "abc",
            "title": "Study",
            "parts": [
                {
                    "name": "Piano",
                    "instrument": "Piano",
                    "measures": [
                        {
                            "measureNumber": 1,
                            "timeSignature": "3/4",
                            "tempo": 90,
                            "notes": [{"pitch": 67, "velocity": 70, "startTime": 0, "duration": 1}],
                            "chords": [{"rootNote": "G", "chordType": "major", "startTime": 0, "duration": 3, "notes": [7, 11, 14]}],
                        }
                    ],
                }
            ],
        }
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "composition.json"
            p.write_text(json.dumps(payload), encoding="utf-8")
            comp = load_composition_json(p)

        self.assertEqual(comp.title, "Study")
        self.assertEqual(comp.parts[0].id, "P1")
        measure = comp.parts[0].measures[0]
        self.assertEqual(measure.time_signature, "3/4")
        self.assertEqual(measure.tempo, 90.0)
        self.assertEqual(measure.chords[0].notes, (7, 11, 14))
        self.assertEqual(comp.notes()[0].pitch, 67)

    def test_composition_dict_keeps_wire_names(self) -> None:
        comp = composition_from_dict({"title": "T", "parts": [{"measures": [{"number": 4, "notes": [{"pitch": 60}]}]}]})
        out = composition_to_dict(comp)
        measure = out["parts"][0]["measures"][0]
        self.assertEqual(measure["measureNumber"], 4)
        self.assertEqual(measure["notes"][0]["startTime"], 0.0)
        self.assertNotIn("midiNote", measure["notes"][0])

    def test_to_jsonable_converts_nested_records(self) -> None:
        record = {
            "notes": [Note(pitch=60, velocity=70, start_time=0.0, duration=0.5, midi_note=60)],
            "chords": (Chord(root_note="C", chord_type="major", start_time=0.0, duration=2.0, notes=(0, 4, 7)),),
            "duration": 2.0,
        }
        out = to_jsonable(record)
        self.assertEqual(out["notes"][0], note_to_dict(record["notes"][0]))
        self.assertEqual(out["notes"][0]["midiNote"], 60)
        self.assertEqual(out["chords"][0]["rootNote"], "C")
        self.assertEqual(out["chords"][0]["notes"], [0, 4, 7])
        json.dumps(out)


if __name__ == "__main__":
    unittest.main()
